from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from dotenv import load_dotenv

from visitor_assistant.config import AssistantConfig, configure_logging, load_config
from visitor_assistant.exceptions import ConfigError, GenerationError, McpError
from visitor_assistant.llm import create_engine
from visitor_assistant.mcp import HttpMcpClient, ToolRegistry
from visitor_assistant.orchestrator import ConversationOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="visitor-assistant",
        description="Visitor Assistant - ask questions about visitor records"
    )
    parser.add_argument("--config", help="Path to YAML config (default: $VISITOR_ASSISTANT_CONFIG)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    ask = sub.add_parser("ask", help="Ask a single question")
    ask.add_argument("prompt", help="Question text")
    ask.add_argument("--site-id", type=int, default=None,
                     help="Site to query (default: orchestrator.default_site_id)")
    ask.add_argument("--json", action="store_true", help="Print the full outcome as JSON")

    sub.add_parser("tools", help="List tools advertised by the record store")

    serve = sub.add_parser("serve", help="Run the HTTP front door")
    serve.add_argument("--host", default=None, help="Bind host (default: web.host)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: web.port)")

    return parser


async def ask_command(config: AssistantConfig, prompt: str, site_id: int | None, as_json: bool) -> int:
    client = HttpMcpClient.from_config(config.mcp, ToolRegistry())
    orchestrator = ConversationOrchestrator.from_config(config, client, create_engine(config.llm))

    try:
        outcome = await orchestrator.run(
            prompt, site_id if site_id is not None else config.orchestrator.default_site_id
        )
    except GenerationError as e:
        print(f"Generation failed: {e}", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps(outcome.model_dump(mode="json"), indent=2))
    else:
        print(outcome.answer_text)
        if outcome.tool_used:
            print(f"\n[tool: {outcome.tool_used}]")
    return 0


async def tools_command(config: AssistantConfig) -> int:
    client = HttpMcpClient.from_config(config.mcp, ToolRegistry())
    try:
        descriptors = await client.list_tools()
    except McpError as e:
        print(f"Could not list tools: {e}", file=sys.stderr)
        return 1

    if not descriptors:
        print("No tools advertised.")
        return 0

    for tool in descriptors:
        params = ", ".join(tool.visible_parameters(config.mcp.reserved_parameter))
        print(f"{tool.name}({params})")
        if tool.description:
            print(f"    {tool.description}")
    return 0


def run(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    # Load environment variables first
    load_dotenv()

    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    configure_logging(config.logging)
    logger.debug(f"Config: {config.log_redacted()}")

    if args.cmd == "ask":
        sys.exit(asyncio.run(ask_command(config, args.prompt, args.site_id, args.json)))

    if args.cmd == "tools":
        sys.exit(asyncio.run(tools_command(config)))

    if args.cmd == "serve":
        from visitor_assistant.web.app import run_server
        run_server(host=args.host, port=args.port, config=config)


if __name__ == "__main__":
    run()
