"""Client for the downstream real-time presentation (socket) server.

The socket server consumes batches of rounds from its own queue and plays
them out to connected players. This module provides:

- HTTP client with bearer-token authentication
- Queue depth / game phase health probe
- Batch submission to the server's queue
- Request metrics for the status surface
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from crash_engine.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)


class NotifierError(RuntimeError):
    """Raised when the socket server is unreachable or answers with a non-2xx status."""


@dataclass
class NotifierMetrics:
    """Metrics collection for socket server requests."""

    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_response_time: float = 0.0
    error_counts_by_type: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_request(
        self, response_time: float, success: bool, error_type: str | None = None
    ) -> None:
        """Record a request metric."""
        self.request_count += 1
        self.total_response_time += response_time
        if success:
            self.success_count += 1
        else:
            self.error_count += 1
            if error_type:
                self.error_counts_by_type[error_type] += 1

    def get_average_response_time(self) -> float:
        return self.total_response_time / self.request_count if self.request_count > 0 else 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "requests": self.request_count,
            "successes": self.success_count,
            "errors": self.error_count,
            "average_response_time_ms": round(self.get_average_response_time() * 1000, 2),
            "errors_by_type": dict(self.error_counts_by_type),
        }


@dataclass(frozen=True)
class NotifierConfig:
    """Immutable configuration for socket server calls."""

    base_url: str
    secret: str | None
    timeout_seconds: float


@dataclass(frozen=True)
class QueueHealth:
    """Queue depth and phase reported by the socket server's /health."""

    queue_size: int
    game_phase: str
    current_round: int | None = None


def load_notifier_config() -> NotifierConfig:
    """Build configuration object from global settings."""

    return NotifierConfig(
        base_url=settings.socket_server_url,
        secret=settings.socket_server_secret,
        timeout_seconds=float(settings.socket_server_timeout_seconds),
    )


class SocketServerClient:
    """HTTP client wrapper for socket server interactions."""

    def __init__(
        self,
        config: NotifierConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_notifier_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self.metrics = NotifierMetrics()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.secret:
            headers["Authorization"] = f"Bearer {self.config.secret}"
        return headers

    async def _request(
        self, method: str, path: str, json_data: Any | None = None
    ) -> httpx.Response:
        client = await self._ensure_client()
        start_time = time.monotonic()
        success = False
        error_type: str | None = None

        try:
            response = await client.request(
                method, path, json=json_data, headers=self._build_headers()
            )
            if response.is_success:
                success = True
            else:
                error_type = f"http_{response.status_code}"
                raise NotifierError(
                    f"Socket server responded {response.status_code} {response.reason_phrase} "
                    f"for {method} {path}"
                )
        except httpx.TimeoutException as exc:
            error_type = "timeout"
            raise NotifierError(f"Socket server request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            error_type = "network_error"
            raise NotifierError(f"Socket server request failed: {exc}") from exc
        except NotifierError:
            raise
        except Exception as exc:
            error_type = "unknown_error"
            raise NotifierError(f"Socket server request failed: {exc}") from exc
        finally:
            self.metrics.record_request(time.monotonic() - start_time, success, error_type)

        return response

    async def fetch_health(self) -> QueueHealth:
        """Return the socket server's queue depth and game phase."""

        response = await self._request("GET", "/health")
        try:
            payload = response.json()
            return QueueHealth(
                queue_size=int(payload["queueSize"]),
                game_phase=str(payload.get("gamePhase", "unknown")),
                current_round=(
                    int(payload["currentRound"])
                    if payload.get("currentRound") is not None
                    else None
                ),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise NotifierError(f"Malformed socket server health payload: {exc}") from exc

    async def queue_batch(
        self, multipliers: Sequence[Mapping[str, float | int]], start_round: int
    ) -> None:
        """Post a persisted batch to the socket server's playback queue."""

        body = {
            "multipliers": [
                {"round_number": row["round_number"], "multiplier": row["multiplier"]}
                for row in multipliers
            ],
            "startRound": start_round,
        }
        await self._request("POST", "/queue", json_data=body)
        logger.info(
            "Sent to socket server (rounds %d-%d)",
            start_round,
            start_round + len(multipliers) - 1,
        )

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _SocketServerClientSingleton:
    """Singleton wrapper for SocketServerClient."""

    _instance: SocketServerClient | None = None

    @classmethod
    def get_instance(cls) -> SocketServerClient:
        """Get or create the singleton client instance."""
        if cls._instance is None:
            cls._instance = SocketServerClient()
        return cls._instance


def get_socket_client() -> SocketServerClient:
    """Return a singleton socket server client instance."""
    return _SocketServerClientSingleton.get_instance()
