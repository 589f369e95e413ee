"""Async HTTP client utilities."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..errors import NetworkError

logger = logging.getLogger(__name__)


class AsyncHTTPClient:
    """Reusable async HTTP client.

    Either owns its ``aiohttp.ClientSession`` (opened by ``async with``) or
    borrows one passed by the caller, in which case it never closes it.
    """

    def __init__(self, headers: Optional[Dict[str, str]] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = 60.0):
        self.default_headers = headers or {}
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(headers=self.default_headers, timeout=self.timeout)
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(headers=self.default_headers, timeout=self.timeout)
            self._owns_session = True
        return self.session

    async def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """GET request decoded as JSON, whatever the announced content type."""
        session = self._ensure_session()
        logger.debug("GET %s", url)
        try:
            async with session.get(url, headers=headers) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            raise NetworkError(f"HTTP {e.status} while fetching {url}", url=url, status=e.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Failed to fetch {url}: {e}", url=url) from e
        except ValueError as e:
            raise NetworkError(f"Response from {url} is not valid JSON: {e}", url=url) from e
