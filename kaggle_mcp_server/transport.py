# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

"""
Authenticated HTTP access to the Kaggle API.

Every call is a single attempt. HTTP errors and network errors are logged and
collapsed into a Failure; callers only ever see Success or Failure.
"""

import logging
from typing import Any, Optional

import httpx

import kaggle_mcp_server.config as config
from kaggle_mcp_server.models import Failure, KaggleCredentials, Success, UpstreamOutcome

logger = logging.getLogger(__name__)


class KaggleTransport:
    """Issues GET/POST requests to Kaggle with a fixed Basic credential."""

    def __init__(
        self,
        credentials: KaggleCredentials,
        timeout: Optional[float] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._headers = {"Authorization": credentials.authorization_header}
        self._timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self._http_transport = http_transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers,
            timeout=self._timeout,
            transport=self._http_transport,
        )

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response | Failure:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            reason = f"{method} {url} failed: {type(e).__name__}: {e}"
            logger.error(f"Error making {url} request: {reason}")
            return Failure(reason)

        if not response.is_success:
            reason = f"{method} error! status: {response.status_code} {response.text}"
            logger.error(f"Error making {url} request: {reason}")
            return Failure(reason)
        return response

    @staticmethod
    def _parse_json(url: str, response: httpx.Response) -> UpstreamOutcome:
        try:
            return Success(response.json())
        except ValueError as e:
            reason = f"Invalid JSON from {url}: {e}"
            logger.error(reason)
            return Failure(reason)

    async def get(self, url: str) -> UpstreamOutcome:
        """GET a URL and return the body text unmodified."""
        response = await self._send("GET", url)
        if isinstance(response, Failure):
            return response
        return Success(response.text)

    async def get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> UpstreamOutcome:
        """GET a URL with query parameters and return the parsed JSON body."""
        response = await self._send("GET", url, params=params)
        if isinstance(response, Failure):
            return response
        return self._parse_json(url, response)

    async def post(self, url: str, body: dict[str, Any]) -> UpstreamOutcome:
        """POST a JSON body and return the parsed JSON reply."""
        response = await self._send("POST", url, json=body)
        if isinstance(response, Failure):
            return response
        return self._parse_json(url, response)
