"""
Target Registry - Tab enumeration through Chrome's HTTP discovery endpoint.

Positional indices are never cached: every call re-reads the live tab list,
so an index always refers to the current order.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from chrome_capture.config import CaptureConfig
from chrome_capture.core.errors import CDPConnectionError, TargetIndexError

logger = logging.getLogger("chrome_capture")


@dataclass
class Target:
    """Information about a browser tab."""
    id: str
    type: str
    url: str
    title: str
    ws_url: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any], config: CaptureConfig) -> "Target":
        return cls(
            id=data["id"],
            type=data.get("type", "unknown"),
            url=data.get("url", ""),
            title=data.get("title", ""),
            ws_url=config.rewrite(data.get("webSocketDebuggerUrl")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "url": self.url, "type": self.type}


class TargetRegistry:
    """Lists, opens and closes tabs via ``http://{host}:{port}/json/*``."""

    def __init__(self, config: Optional[CaptureConfig] = None, *,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or CaptureConfig()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.http_base,
            timeout=self.config.http_timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            raise CDPConnectionError(
                f"Chrome discovery endpoint returned {e.response.status_code} for {path}",
                method=path,
            ) from e
        except httpx.RequestError as e:
            raise CDPConnectionError(
                f"Failed to connect to Chrome at {self.config.http_base}",
                method=path,
            ) from e

    async def list(self) -> List[Target]:
        """Current page targets, in the browser's enumeration order."""
        response = await self._request("GET", "/json/list")
        targets = [
            Target.from_json(item, self.config)
            for item in response.json()
            if item.get("type") == "page"
        ]
        logger.debug(f"Found {len(targets)} page targets")
        return targets

    async def resolve(self, index: int) -> Target:
        """Map a positional index to the target currently at that position."""
        targets = await self.list()
        if not isinstance(index, int) or index < 0 or index >= len(targets):
            raise TargetIndexError(
                f"Tab index {index} out of range ({len(targets)} tabs open)",
                index=index,
                count=len(targets),
                method="resolve",
            )
        return targets[index]

    async def create(self, url: str = "about:blank") -> Target:
        """Open a new tab."""
        response = await self._request("PUT", f"/json/new?{quote(url, safe=':/?&=#%')}")
        target = Target.from_json(response.json(), self.config)
        logger.info("Opened tab", extra={"target_id": target.id})
        return target

    async def close(self, index: int) -> Target:
        """Close the tab currently at ``index``."""
        target = await self.resolve(index)
        await self._request("GET", f"/json/close/{target.id}")
        logger.info(f"Closed tab {index}", extra={"target_id": target.id})
        return target
