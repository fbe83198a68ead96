from visitor_assistant.cli.commands import run

run()
