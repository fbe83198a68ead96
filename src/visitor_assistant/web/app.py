"""FastAPI front door for the visitor assistant."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from visitor_assistant import __version__
from visitor_assistant.config import AssistantConfig, configure_logging, load_config
from visitor_assistant.llm import GenerationEngine, create_engine
from visitor_assistant.mcp import HttpMcpClient, ToolRegistry
from visitor_assistant.orchestrator import ConversationOrchestrator

# Import routes
from visitor_assistant.web.routes import ask, tools

logger = logging.getLogger(__name__)


def create_app(
    config: AssistantConfig | None = None,
    client: HttpMcpClient | None = None,
    engine: GenerationEngine | None = None,
) -> FastAPI:
    """Build the application; missing collaborators are created from config at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Wire config, clients and orchestrator onto app.state."""
        app_config = config or load_config()
        mcp_client = client or HttpMcpClient.from_config(app_config.mcp, ToolRegistry())
        generation_engine = engine or create_engine(app_config.llm)

        logger.info(f"Config: {app_config.log_redacted()}")
        app.state.config = app_config
        app.state.client = mcp_client
        app.state.orchestrator = ConversationOrchestrator.from_config(
            app_config, mcp_client, generation_engine
        )
        logger.info(f"Visitor assistant starting up, record store at {mcp_client.url}")
        yield
        logger.info("Visitor assistant shutting down...")

    app = FastAPI(
        title="Visitor Assistant",
        description="Natural-language questions over visitor records via MCP tools",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ask.router, prefix="/api", tags=["assistant"])
    app.include_router(tools.router, prefix="/api", tags=["tools"])

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        return {
            "status": "ok",
            "known_tools": sorted(request.app.state.client.known_tools()),
            "version": __version__,
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc),
                "path": str(request.url)
            }
        )

    return app


app = create_app()


def run_server(host: str | None = None, port: int | None = None, config: AssistantConfig | None = None):
    """Run the web server using uvicorn."""
    import uvicorn

    config = config or load_config()
    configure_logging(config.logging)
    uvicorn.run(
        create_app(config),
        host=host or config.web.host,
        port=port or config.web.port,
    )


if __name__ == "__main__":
    run_server()
