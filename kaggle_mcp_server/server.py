# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

import logging
import sys
from typing import Optional

import click
import uvicorn
from dotenv import load_dotenv
from mcp.server import FastMCP
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware

import kaggle_mcp_server.config as config
from kaggle_mcp_server.models import KaggleCredentials
from kaggle_mcp_server.routes import register_routes
from kaggle_mcp_server.tools import KaggleTools, register_tools
from kaggle_mcp_server.transport import KaggleTransport

logger = logging.getLogger(__name__)

###############################################################################


class FastMCPWithCORS(FastMCP):
    def streamable_http_app(self) -> Starlette:
        """Return StreamableHTTP server app with CORS middleware
        See: https://github.com/modelcontextprotocol/python-sdk/issues/187
        """
        app = super().streamable_http_app()
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        return app


###############################################################################


def create_mcp_server(
    credentials: KaggleCredentials,
    transport: Optional[KaggleTransport] = None,
    verbose_errors: Optional[bool] = None,
) -> FastMCP:
    """Create the MCP server with all Kaggle tools and routes registered."""
    mcp = FastMCPWithCORS(name="Kaggle MCP Server", json_response=False, stateless_http=True)
    tools = KaggleTools(credentials, transport=transport, verbose_errors=verbose_errors)
    register_tools(mcp, tools)
    register_routes(mcp, credentials)
    return mcp


@click.group()
def server():
    """Manages Kaggle MCP Server."""
    load_dotenv()


@server.command("start")
@click.option(
    "--transport",
    envvar="TRANSPORT",
    type=click.Choice(["stdio", "streamable-http"]),
    default="stdio",
    help="The transport to use for the MCP server. Defaults to 'stdio'.",
)
@click.option(
    "--kaggle-username",
    envvar="KAGGLE_USERNAME",
    type=click.STRING,
    default=None,
    help="The Kaggle username used to authenticate API calls.",
)
@click.option(
    "--kaggle-key",
    envvar="KAGGLE_KEY",
    type=click.STRING,
    default=None,
    help="The Kaggle API key used to authenticate API calls.",
)
@click.option(
    "--kaggle-origin",
    envvar="KAGGLE_ORIGIN",
    type=click.STRING,
    default="https://www.kaggle.com",
    help="The Kaggle origin used when a handle is given instead of a URL.",
)
@click.option(
    "--request-timeout",
    envvar="KAGGLE_REQUEST_TIMEOUT",
    type=click.FLOAT,
    default=30.0,
    help="Seconds to wait for each Kaggle API call. Defaults to 30.",
)
@click.option(
    "--verbose-errors/--no-verbose-errors",
    envvar="KAGGLE_VERBOSE_ERRORS",
    default=False,
    help="Include the upstream failure reason in tool results.",
)
@click.option(
    "--port",
    envvar="PORT",
    type=click.INT,
    default=4040,
    help="The port to use for the Streamable HTTP transport. Ignored for stdio transport.",
)
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Log level for messages written to stderr. Defaults to 'INFO'.",
)
def start_command(
    transport: str,
    kaggle_username: Optional[str],
    kaggle_key: Optional[str],
    kaggle_origin: str,
    request_timeout: float,
    verbose_errors: bool,
    port: int,
    log_level: str,
):
    """Start the Kaggle MCP server with a transport."""

    # stdout carries the MCP stream for the stdio transport.
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )

    config.DEFAULT_ORIGIN = kaggle_origin
    config.REQUEST_TIMEOUT = request_timeout
    config.VERBOSE_ERRORS = verbose_errors

    credentials = KaggleCredentials.from_values(kaggle_username, kaggle_key)
    if not credentials.configured:
        logger.warning("KAGGLE_USERNAME or KAGGLE_KEY is not set, Kaggle API calls will fail")

    try:
        mcp = create_mcp_server(credentials, verbose_errors=verbose_errors)
        logger.info(f"Starting Kaggle MCP Server with transport: {transport}")
        if transport == "stdio":
            mcp.run(transport="stdio")
        elif transport == "streamable-http":
            uvicorn.run(mcp.streamable_http_app(), host="0.0.0.0", port=port)  # noqa: S104
        else:
            raise click.BadParameter("Transport should be `stdio` or `streamable-http`.")
    except click.ClickException:
        raise
    except Exception as e:
        logger.exception(f"Fatal error in Kaggle MCP Server: {e}")
        sys.exit(1)


###############################################################################
# Main.


if __name__ == "__main__":
    server()
