# sandboxfs_server/main.py
from fastmcp import FastMCP
from sandboxfs.di import build_container
from sandboxfs.logging import configure_logging
from sandboxfs_server.registry import ToolHandlers, build_tool_registry, register_into_fastmcp

def create_app() -> FastMCP:
    """
    Build DI container, create FastMCP host, and register tools.
    Keep the server (protocol) separate from tool/service logic.
    """
    container = build_container()
    configure_logging(container.settings.LOG_LEVEL)

    mcp = FastMCP("SandboxFS", version="0.1.0")
    registry = build_tool_registry(ToolHandlers(container))

    # Register tools (thin adapters over the named handlers)
    register_into_fastmcp(mcp, registry)

    return mcp


if __name__ == "__main__":
    app = create_app()
    # stdio transport: client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout
    app.run(transport="stdio")
