"""HTTP client for the SparkVibe backend.

Every call goes through the same pipeline: GETs are coalesced and cached,
requests are paced by a rate-limited queue, timeouts stretch with connection
health, retryable failures are retried with backoff, and a call that still
fails is answered by the fallback synthesizer.
"""

import asyncio
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from sparkvibe.api.errors import (
    ApiError,
    ApplicationError,
    AuthenticationError,
    HttpStatusError,
    TransportError,
)
from sparkvibe.config import Settings, get_settings
from sparkvibe.fallback.operations import NoFallbackAvailable, Operation, find_operation
from sparkvibe.fallback.synthesizer import FallbackSynthesizer
from sparkvibe.observability.logging import (
    LogLevel,
    StructuredLogger,
    get_logger,
    request_context,
    setup_structured_logging,
)
from sparkvibe.observability.metrics import ClientMetrics
from sparkvibe.resilience.cache import RequestCache
from sparkvibe.resilience.health import ConnectionHealth
from sparkvibe.resilience.queue import RateLimitedQueue
from sparkvibe.resilience.retry import RetryConfig, retry_async
from sparkvibe.services.storage import LocalStorage

_INVALID_BODY = object()


class ApiClient:
    """
    Resilient JSON client for the backend API.

    Owns its cache, queue, health tracker, synthesizer and metrics; nothing
    is shared between instances. Use ``create()`` or construct directly, and
    ``dispose()`` (or ``async with``) when done.

    Usage:
        async with ApiClient.create(settings, storage) as api:
            board = await api.get("/leaderboard")
            mood = await api.post("/analyze-mood", {"textInput": "feeling great"})
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[LocalStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        synthesizer: Optional[FallbackSynthesizer] = None,
        metrics: Optional[ClientMetrics] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage if storage is not None else LocalStorage(self.settings.storage_path)
        self.log = logger or get_logger()
        self.metrics = metrics or ClientMetrics()

        self.cache = RequestCache()
        self.queue = RateLimitedQueue(
            min_interval=self.settings.min_request_interval,
            cooldown=self.settings.queue_cooldown,
        )
        self.health = ConnectionHealth(
            max_backoff_multiplier=self.settings.max_backoff_multiplier,
            unhealthy_failure_threshold=self.settings.unhealthy_failure_threshold,
        )
        self.synthesizer = synthesizer or FallbackSynthesizer(
            self.storage,
            demo_mode_enabled=self.settings.demo_mode_enabled,
        )

        self.base_url = self.settings.base_url
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=self.settings.request_timeout,
        )
        self._closed = False

        self._ttls = {
            Operation.HEALTH: self.settings.health_cache_ttl,
            Operation.LEADERBOARD: self.settings.leaderboard_cache_ttl,
            Operation.TRENDING_ADVENTURES: self.settings.trending_cache_ttl,
            Operation.USER_PROFILE: self.settings.profile_cache_ttl,
        }

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        storage: Optional[LocalStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ) -> "ApiClient":
        """Build a client with its own cache, queue and health state.

        Unless a logger is passed in, the process logger is configured from
        ``log_level`` and ``log_json``.
        """
        settings = settings or get_settings()
        if kwargs.get("logger") is None:
            kwargs["logger"] = setup_structured_logging(
                level=LogLevel(settings.log_level.upper()),
                json_output=settings.log_json,
            )

        client = cls(settings=settings, storage=storage, transport=transport, **kwargs)
        client.log.info(
            "API client created",
            base_url=client.base_url,
            queue=client.settings.use_request_queue,
            demo_mode=client.settings.demo_mode_enabled,
        )
        return client

    async def dispose(self):
        """Stop the queue, drop cached data and close the connection pool."""
        if self._closed:
            return
        self._closed = True

        await self.queue.dispose()
        self.cache.clear()
        await self._http.aclose()
        self.log.info("API client disposed")

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.dispose()

    # Public API

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        ttl: Optional[float] = None,
        use_cache: bool = True,
    ) -> Any:
        """
        GET an endpoint, serving fresh cached data when available.

        Args:
            endpoint: Path relative to the API base (or an absolute URL)
            params: Query parameters, part of the cache key
            ttl: Seconds to cache the result; defaults per endpoint
            use_cache: Bypass the cache when False

        Returns:
            Parsed JSON, or a synthesized response if the backend failed

        Raises:
            ApplicationError: An auth operation was rejected by the backend
            NoFallbackAvailable: The call failed and cannot be synthesized
        """
        self._ensure_open()
        operation = find_operation("GET", endpoint)
        if ttl is None:
            ttl = self._ttls.get(operation, self.settings.default_cache_ttl)

        async def fetch():
            return await self._fetch("GET", endpoint, operation, params=params)

        try:
            if use_cache and ttl > 0:
                return await self.cache.get(self.cache_key("GET", endpoint, params), fetch, ttl)
            return await fetch()
        except ApplicationError:
            raise
        except ApiError as e:
            return self._fallback("GET", endpoint, operation, params, e)

    async def post(self, endpoint: str, data: Any = None) -> Any:
        return await self._write("POST", endpoint, data)

    async def put(self, endpoint: str, data: Any = None) -> Any:
        return await self._write("PUT", endpoint, data)

    async def delete(self, endpoint: str) -> Any:
        return await self._write("DELETE", endpoint, None)

    # Cache control

    @staticmethod
    def cache_key(method: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Logical key for a request: method, endpoint and sorted query params."""
        key = f"{method.upper()} {endpoint}"
        if params:
            key += "?" + urlencode(sorted((str(k), str(v)) for k, v in params.items()))
        return key

    def delete_cache_key(self, key: str) -> bool:
        """Invalidate a cache key, or every cached GET of an endpoint."""
        dropped = self.cache.delete(key)
        dropped = self.cache.delete(f"GET {key}") or dropped
        return self.cache.delete_prefix(f"GET {key}?") > 0 or dropped

    def clear_cache(self):
        self.cache.clear()

    # Connectivity

    def set_online(self, online: bool):
        """Record network availability reported by the host environment."""
        if online != self.health.is_online:
            self.log.info("Network is back online" if online else "Network went offline")
            if online:
                # Failures seen while offline say nothing about the backend
                self.health.reset()
        self.health.set_online(online)

    def connection_status(self) -> Dict[str, Any]:
        """Health summary for display, including outbox size."""
        status = self.health.snapshot()
        status["pendingSync"] = len(self.storage.pending_items())
        status["lastSync"] = self.storage.last_synced()
        status["demoMode"] = self.settings.demo_mode_enabled
        return status

    async def flush_pending(self) -> Dict[str, int]:
        """
        Replay writes queued while offline, oldest first.

        Replay stops at the first failure that may succeed later (network,
        server or auth) so ordering is kept; items the backend rejects
        outright are dropped.

        Returns:
            Counts of sent, dropped and remaining items
        """
        self._ensure_open()
        items = self.storage.pending_items()
        if not items:
            return {"sent": 0, "dropped": 0, "remaining": 0}

        sent = dropped = 0
        remaining = []

        for index, item in enumerate(items):
            method = item.get("method") if isinstance(item, dict) else None
            endpoint = item.get("endpoint") if isinstance(item, dict) else None
            if not method or not endpoint:
                dropped += 1
                continue

            try:
                await self._fetch(method, endpoint, find_operation(method, endpoint), json=item.get("data"))
            except ApiError as e:
                if e.retryable or isinstance(e, (TransportError, AuthenticationError)):
                    remaining = items[index:]
                    self.log.warning(
                        "Outbox replay interrupted",
                        exception=e,
                        sent=sent,
                        remaining=len(remaining),
                    )
                    break
                dropped += 1
                self.log.warning(f"Dropping rejected outbox item {method} {endpoint}", exception=e)
            else:
                sent += 1

        self.storage.replace_pending(remaining)
        if not remaining:
            self.storage.mark_synced()

        self.log.info("Outbox flushed", sent=sent, dropped=dropped, remaining=len(remaining))
        return {"sent": sent, "dropped": dropped, "remaining": len(remaining)}

    def stats(self) -> Dict[str, Any]:
        return {
            "cache": self.cache.stats(),
            "queue": {"pending": self.queue.pending, "executed": self.queue.executed},
            "fallbacks": self.synthesizer.get_stats(),
            "health": self.health.snapshot(),
            "metrics": self.metrics.registry.collect_all(),
        }

    # Pipeline

    def _ensure_open(self):
        if self._closed:
            raise RuntimeError("ApiClient has been disposed")

    async def _write(self, method: str, endpoint: str, data: Any) -> Any:
        self._ensure_open()
        operation = find_operation(method, endpoint)

        try:
            result = await self._fetch(method, endpoint, operation, json=data)
        except ApplicationError:
            raise
        except ApiError as e:
            return self._fallback(method, endpoint, operation, data, e)

        if operation is not None and operation.info.establishes_session:
            self._store_session(result)

        return result

    async def _fetch(
        self,
        method: str,
        endpoint: str,
        operation: Optional[Operation],
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send with retries; GETs get ``get_retries``, writes ``post_retries``."""
        retries = self.settings.get_retries if method == "GET" else self.settings.post_retries
        config = RetryConfig(
            max_retries=retries,
            base_delay=self.settings.retry_base_delay,
            max_delay=self.settings.retry_max_delay,
            retryable_exceptions=(TransportError, HttpStatusError),
        )

        def on_retry(attempt: int, error: Exception, delay: float):
            self.log.warning(
                f"Retrying {method} {endpoint}",
                attempt=attempt + 1,
                delay=round(delay, 3),
                error=str(error),
            )

        result = await retry_async(
            lambda: self._send(method, endpoint, operation, params, json),
            config=config,
            on_retry=on_retry,
        )

        if operation is not None:
            self.synthesizer.record_primary(operation)
        return result

    async def _send(
        self,
        method: str,
        endpoint: str,
        operation: Optional[Operation],
        params: Optional[Dict[str, Any]],
        json: Any,
    ) -> Any:
        if not self.health.is_online:
            error = TransportError("Network is offline", endpoint, kind="offline")
            error.retryable = False
            raise error

        if not self.settings.use_request_queue:
            return await self._dispatch(method, endpoint, operation, params, json)

        self.metrics.queue_depth.inc()
        try:
            return await self.queue.enqueue(
                lambda: self._dispatch(method, endpoint, operation, params, json)
            )
        finally:
            self.metrics.queue_depth.dec()

    async def _dispatch(
        self,
        method: str,
        endpoint: str,
        operation: Optional[Operation],
        params: Optional[Dict[str, Any]],
        json: Any,
    ) -> Any:
        """Perform one HTTP round-trip and classify the outcome."""
        headers = {}
        token = self.storage.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        timeout = self.health.scaled_timeout(self.settings.request_timeout, self.settings.max_timeout)
        request_id = uuid.uuid4().hex[:12]

        with request_context(request_id=request_id):
            self.log.debug(f"API Request: {method} {endpoint}", timeout=timeout)
            try:
                with self.metrics.latency.time({"method": method}) as timer:
                    response = await asyncio.wait_for(
                        self._http.request(
                            method,
                            endpoint,
                            params=params,
                            json=json,
                            headers=headers,
                            timeout=timeout,
                        ),
                        timeout=timeout,
                    )
            except (httpx.TimeoutException, asyncio.TimeoutError) as e:
                self._record_failure(method, "timeout")
                raise TransportError(
                    f"Request timed out after {timeout:.1f}s", endpoint, kind="timeout"
                ) from e
            except httpx.RequestError as e:
                self._record_failure(method, "network")
                raise TransportError(str(e) or type(e).__name__, endpoint) from e

            self.log.info(
                f"API Response: {method} {endpoint}",
                status=response.status_code,
                duration_ms=round(timer.duration * 1000, 2),
            )
            return self._handle_response(method, endpoint, operation, response)

    def _handle_response(
        self,
        method: str,
        endpoint: str,
        operation: Optional[Operation],
        response: httpx.Response,
    ) -> Any:
        status = response.status_code
        body = self._parse_body(response)
        message = self._error_message(body)
        surfaces_errors = operation is not None and operation.info.surfaces_client_errors

        if status == 401:
            # The server answered, so the connection itself is fine
            self.health.record_success()
            self._count(method, "unauthorized")
            self._clear_credentials()
            if surfaces_errors:
                raise ApplicationError(message or "Invalid email or password", endpoint, status, body)
            raise AuthenticationError(endpoint, message, body)

        if status >= 500 or status == 429:
            self._record_failure(method, "server_error")
            raise HttpStatusError(status, endpoint, message, body)

        self.health.record_success()

        if status >= 400:
            self._count(method, "client_error")
            if surfaces_errors and status != 408:
                raise ApplicationError(message or f"Request failed with status {status}", endpoint, status, body)
            raise HttpStatusError(status, endpoint, message, body)

        if body is _INVALID_BODY:
            self._count(method, "invalid_body")
            raise TransportError("Response was not valid JSON", endpoint, kind="decode")

        if surfaces_errors and isinstance(body, dict) and body.get("success") is False:
            self._count(method, "rejected")
            raise ApplicationError(message or "Request was rejected", endpoint, status, body)

        self._count(method, "success")
        return body

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None if response.status_code >= 400 else _INVALID_BODY

    @staticmethod
    def _error_message(body: Any) -> Optional[str]:
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if message:
                return str(message)
        return None

    def _fallback(
        self,
        method: str,
        endpoint: str,
        operation: Optional[Operation],
        payload: Any,
        error: ApiError,
    ) -> Any:
        """Answer a failed call with a synthesized response."""
        if payload is not None and not isinstance(payload, dict):
            payload = None

        try:
            data = self.synthesizer.synthesize(operation or endpoint, payload, method=method)
        except NoFallbackAvailable as e:
            self.log.error(f"API call failed for {method} {endpoint}", exception=error, reason=e.reason)
            raise e from error

        self.metrics.fallbacks.inc(labels={"operation": operation.value})
        self.log.warning(
            f"Using fallback data for {method} {endpoint}",
            error=str(error),
            error_type=type(error).__name__,
        )
        return data

    def _store_session(self, result: Any):
        if not isinstance(result, dict) or not result.get("success"):
            return
        token, user = result.get("token"), result.get("user")
        if token and isinstance(user, dict):
            self.storage.set_session(token, user)
            # Cached reads belong to the previous session
            self.cache.clear()

    def _clear_credentials(self):
        self.storage.clear_session()
        self.cache.clear()
        self.log.warning("Authentication failed, cleared stored credentials")

    def _record_failure(self, method: str, outcome: str):
        self.health.record_failure()
        self._count(method, outcome)

    def _count(self, method: str, outcome: str):
        self.metrics.requests.inc(labels={"method": method, "outcome": outcome})
