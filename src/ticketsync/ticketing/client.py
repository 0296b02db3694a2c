"""
Resilient async client for the remote ticketing REST API.

Every call goes through TicketingClient.request(), which:
  1. Resolves the bearer credential from the active config row (once; the
     key is then cached on the instance)
  2. Issues the HTTP call with a fresh httpx.AsyncClient
  3. Retries any exception or non-2xx status, up to max_attempts total,
     sleeping backoff_base * 2**n between attempts (1s, 2s, 4s ...)
  4. Returns FetchResult(data, error) — it never raises

Build one instance at startup and hand it to whatever needs it; the cached
credential and the memoized remote stats live on that instance only.

Remote stats are memoized for stats_ttl_seconds (5 minutes by default) with
no invalidation on writes, so stats read right after a create/update or a
sync may be up to one window stale.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 1.0
DEFAULT_STATS_TTL_SECONDS = 300.0


class NetworkError(RuntimeError):
    """Raised for a single failed attempt (bad status or unusable response)."""


@dataclass
class FetchResult:
    """Outcome of a remote call: exactly one of data / error is meaningful."""

    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop unset query params and flatten lists / datetimes for the wire."""
    cleaned: Dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, (list, tuple, set)):
            value = ",".join(str(v) for v in value)
        cleaned[key] = value
    return cleaned


class TicketingClient:
    """Bearer-authenticated client for the remote ticketing API."""

    def __init__(
        self,
        resolver,
        base_url: str,
        *,
        timeout: Optional[float] = 30.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        stats_ttl_seconds: float = DEFAULT_STATS_TTL_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            resolver: ConfigResolver (anything with get_api_key()).
            base_url: Remote API root, e.g. "https://tickets.example.com/api".
            timeout: Per-attempt timeout in seconds; None or 0 disables it.
            max_attempts: Total attempts per call, including the first.
            backoff_base: Delay before the second attempt; doubles after that.
            stats_ttl_seconds: Memoization window for get_ticket_stats().
            transport: Optional httpx transport (tests use httpx.MockTransport).
            clock: Monotonic clock used by the stats memo.
        """
        self._resolver = resolver
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.stats_ttl_seconds = stats_ttl_seconds
        self._transport = transport
        self._clock = clock
        self._api_key: Optional[str] = None
        self._stats_cache: Optional[Tuple[float, Any]] = None

    # ─── Core request path ────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> FetchResult:
        """Issue one logical call with retry. Never raises."""
        last_error = "request not attempted"
        for attempt in range(1, self.max_attempts + 1):
            try:
                data = await self._send(method, path, params=params, json=json)
                if attempt > 1:
                    logger.info("%s %s succeeded on attempt %d", method, path, attempt)
                return FetchResult(data=data)
            except Exception as exc:
                last_error = str(exc) or exc.__class__.__name__
                logger.warning(
                    "%s %s failed (attempt %d/%d): %s",
                    method, path, attempt, self.max_attempts, last_error,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff_base * 2 ** (attempt - 1))

        logger.error("%s %s gave up after %d attempts", method, path, self.max_attempts)
        return FetchResult(data=None, error=last_error)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers = {
            "Authorization": f"Bearer {self._get_api_key()}",
            "Accept": "application/json",
        }
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout or None),
            transport=self._transport,
        ) as client:
            response = await client.request(
                method, path, params=_clean_params(params), json=json, headers=headers
            )

        if not response.is_success:
            raise NetworkError(
                f"{method} {path} returned HTTP {response.status_code}: {response.text[:200]}"
            )
        if not response.content:
            return None
        return response.json()

    def _get_api_key(self) -> str:
        """Cached credential, resolved lazily. Empty string if none configured."""
        if self._api_key is None:
            key = self._resolver.get_api_key()
            if not key:
                return ""
            self._api_key = key
        return self._api_key

    def clear_credential(self) -> None:
        """Forget the cached credential so the next call re-reads the config row."""
        self._api_key = None

    # ─── Remote-proxied operations ────────────────────────────────────────────

    async def get_tickets(
        self,
        *,
        page: int = 1,
        limit: int = 50,
        status: Optional[Iterable[str]] = None,
        priority: Optional[Iterable[str]] = None,
        category: Optional[Iterable[str]] = None,
        department: Optional[Iterable[str]] = None,
        assignee_id: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> FetchResult:
        """GET /tickets with optional server-side filters."""
        params = {
            "page": page,
            "limit": limit,
            "status": list(status) if status else None,
            "priority": list(priority) if priority else None,
            "category": list(category) if category else None,
            "department": list(department) if department else None,
            "assignee_id": assignee_id,
            "search": search,
            "sort_by": sort_by,
            "sort_direction": sort_direction,
        }
        return await self.request("GET", "/tickets", params=params)

    async def get_ticket_by_id(self, ticket_id: str) -> FetchResult:
        return await self.request("GET", f"/tickets/{ticket_id}")

    async def create_ticket(self, data: Dict[str, Any]) -> FetchResult:
        return await self.request("POST", "/tickets", json=data)

    async def update_ticket(self, ticket_id: str, data: Dict[str, Any]) -> FetchResult:
        return await self.request("PATCH", f"/tickets/{ticket_id}", json=data)

    async def get_ticket_stats(self) -> FetchResult:
        """GET /tickets/stats, memoized for stats_ttl_seconds. Failures are not cached."""
        now = self._clock()
        if self._stats_cache is not None:
            fetched_at, data = self._stats_cache
            if now - fetched_at < self.stats_ttl_seconds:
                return FetchResult(data=data)

        result = await self.request("GET", "/tickets/stats")
        if result.ok:
            self._stats_cache = (now, result.data)
        return result

    async def get_staff_logs(
        self,
        *,
        page: int = 1,
        limit: int = 50,
        ticket_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        action_type: Optional[Iterable[str]] = None,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> FetchResult:
        """GET /tickets/staff-logs. ticket_id is the remote ticket identifier."""
        params = {
            "page": page,
            "limit": limit,
            "ticket_id": ticket_id,
            "staff_id": staff_id,
            "action_type": list(action_type) if action_type else None,
            "created_after": created_after,
            "created_before": created_before,
        }
        return await self.request("GET", "/tickets/staff-logs", params=params)
