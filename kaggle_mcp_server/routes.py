# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

"""
Custom API routes for Kaggle MCP Server.

Only served by the streamable HTTP transport.
"""

import logging

from mcp.server import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from kaggle_mcp_server.models import KaggleCredentials

logger = logging.getLogger(__name__)


def register_routes(mcp_server: FastMCP, credentials: KaggleCredentials):
    """Register all custom routes with the provided FastMCP server instance."""

    async def health_check(request: Request):
        """Custom health check endpoint"""
        return JSONResponse(
            {
                "success": True,
                "service": "kaggle-mcp-server",
                "message": "Kaggle MCP Server is running.",
                "status": "healthy",
                "credentials_configured": credentials.configured,
            }
        )

    mcp_server.custom_route("/api/healthz", ["GET"])(health_check)
