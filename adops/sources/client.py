"""
AdOps API Client
================

Async HTTP client for the analytics endpoints with:
- Async requests via httpx
- Exponential backoff retries on transport errors (tenacity)
- Uniform FetchOperationError for network, status and decoding failures
- Zero-argument fetch operations ready for a RefreshCoordinator
"""

from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential

from adops.core.config import Config
from adops.core.errors import ConfigError, FetchOperationError
from adops.refresh.coordinator import RefreshCoordinator
from adops.utils.logger import get_logger, log_execution_time

log = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"

# resource -> (path, default count or None when the endpoint takes no count)
RESOURCES: Dict[str, tuple] = {
    "creatives": ("/api/creatives", 20),
    "telemetry": ("/api/telemetry", 100),
    "geos": ("/api/geos", None),
    "pacing": ("/api/pacing", 10),
}

Envelope = Dict[str, Any]


class AdOpsClient:
    """
    Thin async client over the mock analytics API
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or Config.get("client", "base_url", default=DEFAULT_BASE_URL)
        self.timeout = float(timeout if timeout is not None else Config.get("client", "timeout_seconds", default=10.0))
        self.max_retries = int(max_retries if max_retries is not None else Config.get("client", "max_retries", default=3))
        if self.max_retries < 1:
            raise ConfigError("max_retries must be at least 1", key="max_retries", section="client")

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=transport,
        )
        log.debug(f"AdOpsClient initialized for {self.base_url}, timeout={self.timeout}s, max_retries={self.max_retries}")

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(self, path: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, max=8),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=False,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self.client.get(path, params=params)
        except RetryError as e:
            cause = e.last_attempt.exception()
            log.warning(f"GET {path} failed after {self.max_retries} attempts: {cause}")
            raise FetchOperationError(str(cause) or "Network request failed", url=path, source="http") from cause
        except httpx.HTTPError as e:
            log.warning(f"GET {path} failed: {e!r}")
            raise FetchOperationError(str(e) or e.__class__.__name__, url=path, source="http") from e

    @log_execution_time
    async def get_envelope(self, path: str, params: Optional[Dict[str, Any]] = None) -> Envelope:
        """
        GET ``path`` and return the decoded JSON envelope

        Raises:
            FetchOperationError: network failure, non-2xx status or invalid JSON
        """
        response = await self._request(path, params)

        if response.is_error:
            raise FetchOperationError(
                f"Failed to fetch {path}: HTTP {response.status_code}",
                url=str(response.request.url),
                status_code=response.status_code,
                source="http",
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchOperationError(f"Invalid JSON from {path}", url=str(response.request.url), source="http") from e

    async def creatives(self, count: int = 20) -> Envelope:
        return await self.get_envelope("/api/creatives", {"count": count})

    async def telemetry(self, count: int = 100) -> Envelope:
        return await self.get_envelope("/api/telemetry", {"count": count})

    async def geos(self) -> Envelope:
        return await self.get_envelope("/api/geos")

    async def pacing(self, count: int = 10) -> Envelope:
        return await self.get_envelope("/api/pacing", {"count": count})

    def fetch_operation(self, resource: str, count: Optional[int] = None) -> Callable[[], Awaitable[Envelope]]:
        """Return a zero-argument coroutine function fetching ``resource``."""
        if resource not in RESOURCES:
            raise ConfigError(f"Unknown resource: {resource}", key="resource", details={"known": sorted(RESOURCES)})

        path, default_count = RESOURCES[resource]
        params = None
        if default_count is not None:
            params = {"count": count if count is not None else default_count}

        async def fetch() -> Envelope:
            return await self.get_envelope(path, params)

        fetch.__name__ = f"fetch_{resource}"
        return fetch


def telemetry_refresh(client: AdOpsClient, interval: float = 5.0, **kwargs: Any) -> RefreshCoordinator[Envelope]:
    """Coordinator polling the latest 50 telemetry events."""
    return RefreshCoordinator(
        client.fetch_operation("telemetry", count=50),
        interval=interval,
        name="telemetry",
        **kwargs,
    )


__all__ = ["AdOpsClient", "RESOURCES", "telemetry_refresh"]
