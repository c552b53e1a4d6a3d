"""Tests for the API client against a stub backend."""

import asyncio

import httpx
import pytest

from stub_backend import SERVER_TOKEN, VALID_PASSWORD, RecordingTransport, build_backend


class TestOnlineRequests:
    """Tests for calls that reach the backend."""

    @pytest.mark.asyncio
    async def test_signin_persists_session(self, api, storage, online_transport):
        """Test a successful sign-in stores the server's token and user."""
        result = await api.post("/auth/signin", {"email": "alice@example.com", "password": VALID_PASSWORD})

        assert result["success"] is True
        assert "fallback" not in result
        assert storage.get_token() == SERVER_TOKEN
        assert storage.get_user()["name"] == "Alice"
        assert online_transport.count("POST", "/auth/signin") == 1

    @pytest.mark.asyncio
    async def test_leaderboard_cached_within_ttl(self, api, online_transport):
        """Test two reads within the TTL make one round-trip."""
        first = await api.get("/leaderboard")
        second = await api.get("/leaderboard")

        assert online_transport.count("GET", "/leaderboard") == 1
        assert second is first
        assert first["data"][0]["username"] == "Alice"

    @pytest.mark.asyncio
    async def test_concurrent_reads_coalesce(self, api, online_transport):
        results = await asyncio.gather(*(api.get("/health") for _ in range(4)))

        assert online_transport.count("GET", "/health") == 1
        assert all(r["status"] == "healthy" for r in results)

    @pytest.mark.asyncio
    async def test_cache_bypass_and_invalidation(self, api, online_transport):
        await api.get("/leaderboard")
        await api.get("/leaderboard", use_cache=False)
        assert online_transport.count("GET", "/leaderboard") == 2

        assert api.delete_cache_key("/leaderboard") is True
        await api.get("/leaderboard")
        assert online_transport.count("GET", "/leaderboard") == 3

        api.clear_cache()
        await api.get("/leaderboard")
        assert online_transport.count("GET", "/leaderboard") == 4

    def test_cache_key_sorts_params(self):
        from sparkvibe.api.client import ApiClient

        assert ApiClient.cache_key("get", "/leaderboard", {"b": 2, "a": 1}) == "GET /leaderboard?a=1&b=2"
        assert ApiClient.cache_key("GET", "/health") == "GET /health"

    @pytest.mark.asyncio
    async def test_bearer_token_attached(self, api, storage, online_transport):
        storage.set_session(SERVER_TOKEN, {"id": "u-1"})

        result = await api.get("/user/profile")

        assert result["user"]["id"] == "u-1"
        assert online_transport.headers[-1]["authorization"] == f"Bearer {SERVER_TOKEN}"

    @pytest.mark.asyncio
    async def test_writes_are_not_cached(self, api, online_transport):
        await api.post("/analyze-mood", {"textInput": "hi"})
        await api.post("/analyze-mood", {"textInput": "hi"})

        assert online_transport.count("POST", "/analyze-mood") == 2

    @pytest.mark.asyncio
    async def test_success_resets_health(self, api):
        api.health.record_failure()

        await api.get("/health")

        assert api.health.state.consecutive_failures == 0
        assert api.connection_status()["status"] == "online"


class TestAuthentication:
    """Tests for 401 handling and auth errors."""

    @pytest.mark.asyncio
    async def test_401_clears_credentials_then_falls_back(self, api, storage):
        """Test a 401 wipes the stored session and still returns usable data."""
        storage.set_session("expired-token", {"id": "u-1", "name": "Alice"})
        await api.get("/leaderboard")
        assert len(api.cache) == 1

        result = await api.get("/user/profile")

        assert result["fallback"] is True
        assert result["success"] is True
        assert result["user"]["isGuest"] is True
        assert storage.get_token() is None
        assert storage.get_json("sparkvibe_user") is None
        assert len(api.cache) == 0

    @pytest.mark.asyncio
    async def test_wrong_password_is_application_error(self, api, storage):
        """Test sign-in rejections reach the caller instead of a fallback."""
        from sparkvibe.api.errors import ApplicationError

        with pytest.raises(ApplicationError) as exc:
            await api.post("/auth/signin", {"email": "alice@example.com", "password": "nope"})

        assert str(exc.value) == "Invalid email or password"
        assert storage.get_token() is None

    @pytest.mark.asyncio
    async def test_signup_conflict_is_application_error(self, api):
        from sparkvibe.api.errors import ApplicationError

        with pytest.raises(ApplicationError) as exc:
            await api.post("/auth/signup", {"email": "taken@example.com", "password": "pw"})

        assert exc.value.status == 400
        assert "already registered" in str(exc.value)


class TestRetries:
    """Tests for retry policy."""

    @pytest.mark.asyncio
    async def test_get_retries_server_errors(self, api, backend, online_transport):
        """Test GETs retry 5xx and succeed once the backend recovers."""
        backend.state.fail_next["/leaderboard"] = 2

        result = await api.get("/leaderboard")

        assert "fallback" not in result
        assert online_transport.count("GET", "/leaderboard") == 3

    @pytest.mark.asyncio
    async def test_get_falls_back_after_retries(self, api, backend, online_transport):
        backend.state.fail_next["/leaderboard"] = 5

        result = await api.get("/leaderboard")

        assert result["fallback"] is True
        assert online_transport.count("GET", "/leaderboard") == 3
        assert api.health.state.consecutive_failures == 3

    @pytest.mark.asyncio
    async def test_post_is_not_retried(self, api, backend, online_transport):
        backend.state.fail_next["/update-points"] = 1

        result = await api.post("/update-points", {"points": 5})

        assert result["fallback"] is True
        assert online_transport.count("POST", "/update-points") == 1


class TestOffline:
    """Tests for behaviour while the backend is unreachable."""

    @pytest.mark.asyncio
    async def test_demo_signin_offline(self, demo_api, storage):
        """Test offline sign-in in demo mode yields a demo session."""
        result = await demo_api.post("/auth/signin", {"email": "alice@example.com", "password": "pw"})

        assert result["success"] is True
        assert result["fallback"] is True
        assert result["token"].startswith("demo-token-")
        assert storage.get_token() == result["token"]
        assert storage.get_user()["id"] == result["user"]["id"]

    @pytest.mark.asyncio
    async def test_signin_offline_without_demo_mode(self, offline_api, storage):
        """Test offline sign-in fails closed when demo mode is off."""
        from sparkvibe.api.errors import TransportError
        from sparkvibe.fallback.operations import NoFallbackAvailable

        with pytest.raises(NoFallbackAvailable) as exc:
            await offline_api.post("/auth/signin", {"email": "alice@example.com", "password": "pw"})

        assert isinstance(exc.value.__cause__, TransportError)
        assert storage.get_token() is None

    @pytest.mark.asyncio
    async def test_analyze_mood_offline(self, offline_api):
        """Test offline mood analysis is synthesized from keywords."""
        result = await offline_api.post("/analyze-mood", {"textInput": "I feel great and excited today"})

        assert result["mood"] == "happy"
        assert result["fallback"] is True

    @pytest.mark.asyncio
    async def test_fallback_reads_are_not_cached(self, offline_api, offline_transport):
        await offline_api.get("/trending-adventures")
        await offline_api.get("/trending-adventures")

        assert offline_transport.count("GET", "/trending-adventures") == 6
        assert len(offline_api.cache) == 0

    @pytest.mark.asyncio
    async def test_hanging_request_times_out_to_fallback(self, settings, storage):
        """Test a stalled call is cut off without wedging the cache or queue."""
        from sparkvibe.api.client import ApiClient

        async def handler(request):
            if request.url.path == "/leaderboard":
                await asyncio.sleep(60)
            return httpx.Response(200, json={"status": "healthy"})

        fast = settings.model_copy(update={"request_timeout": 0.1, "get_retries": 1})
        async with ApiClient(fast, storage, transport=httpx.MockTransport(handler)) as client:
            result = await asyncio.wait_for(client.get("/leaderboard"), timeout=5)

            assert result["fallback"] is True
            assert not client.cache.is_pending(ApiClient.cache_key("GET", "/leaderboard"))
            assert client.metrics.requests.get({"method": "GET", "outcome": "timeout"}) == 2

            health = await asyncio.wait_for(client.get("/health", use_cache=False), timeout=5)

            assert health == {"status": "healthy"}
            assert client.queue.executed == 3
            assert client.queue.pending == 0
            assert client.metrics.latency.get_stats({"method": "GET"})["count"] == 3

    @pytest.mark.asyncio
    async def test_unknown_endpoint_raises(self, offline_api):
        from sparkvibe.fallback.operations import NoFallbackAvailable

        with pytest.raises(NoFallbackAvailable):
            await offline_api.get("/not-a-route")

    @pytest.mark.asyncio
    async def test_set_online_false_skips_network(self, api, online_transport):
        api.set_online(False)

        result = await api.get("/health")

        assert result["fallback"] is True
        assert online_transport.requests == []
        assert api.connection_status()["status"] == "offline"

    @pytest.mark.asyncio
    async def test_reconnect_clears_backoff(self, offline_api):
        """Test coming back online drops backoff from earlier failures."""
        await offline_api.get("/health")
        assert offline_api.health.state.backoff_multiplier > 1
        assert offline_api.connection_status()["status"] != "online"

        offline_api.set_online(False)
        offline_api.set_online(True)

        assert offline_api.health.state.consecutive_failures == 0
        assert offline_api.health.state.backoff_multiplier == 1.0
        assert offline_api.health.is_online is True
        assert offline_api.connection_status()["status"] == "online"

    @pytest.mark.asyncio
    async def test_metrics_count_fallbacks(self, offline_api):
        await offline_api.post("/analyze-mood", {"textInput": "calm"})

        assert offline_api.metrics.fallbacks.get({"operation": "analyze_mood"}) == 1
        assert offline_api.metrics.requests.get({"method": "POST", "outcome": "network"}) == 1


class TestOutbox:
    """Tests for replaying writes made offline."""

    @pytest.mark.asyncio
    async def test_flush_replays_in_order(self, settings, storage):
        from sparkvibe.api.client import ApiClient

        transport = RecordingTransport(httpx.ASGITransport(app=build_backend()))
        storage.queue_pending("POST", "/update-points", {"points": 5})
        storage.queue_pending("POST", "/track-event", {"event": "card_shared"})

        async with ApiClient.create(settings, storage, transport=transport) as api:
            counts = await api.flush_pending()

        assert counts == {"sent": 2, "dropped": 0, "remaining": 0}
        assert transport.requests == [("POST", "/update-points"), ("POST", "/track-event")]
        assert storage.pending_items() == []
        assert storage.last_synced() is not None

    @pytest.mark.asyncio
    async def test_flush_keeps_items_while_offline(self, offline_api, storage):
        storage.queue_pending("POST", "/update-points", {"points": 5})

        counts = await offline_api.flush_pending()

        assert counts == {"sent": 0, "dropped": 0, "remaining": 1}
        assert len(storage.pending_items()) == 1
        assert storage.last_synced() is None

    @pytest.mark.asyncio
    async def test_flush_drops_rejected_items(self, api, storage):
        storage.queue_pending("POST", "/track-event", {})
        storage.queue_pending("POST", "/update-points", {"points": 1})

        counts = await api.flush_pending()

        assert counts == {"sent": 1, "dropped": 1, "remaining": 0}

    @pytest.mark.asyncio
    async def test_offline_write_then_flush(self, settings, storage, signed_in_user):
        """Test a write made offline reaches the backend once it is back."""
        from sparkvibe.api.client import ApiClient

        storage.set_session(SERVER_TOKEN, signed_in_user)
        backend = build_backend()
        transport = RecordingTransport(httpx.ASGITransport(app=backend))

        async with ApiClient.create(settings, storage, transport=transport) as api:
            api.set_online(False)
            offline = await api.post("/update-points", {"points": 20})
            assert offline["fallback"] is True
            assert api.connection_status()["pendingSync"] == 1

            api.set_online(True)
            counts = await api.flush_pending()

        assert counts["sent"] == 1
        assert transport.requests == [("POST", "/update-points")]


class TestLifecycle:
    """Tests for client creation and disposal."""

    @pytest.mark.asyncio
    async def test_clients_do_not_share_state(self, settings, storage, online_transport):
        from sparkvibe.api.client import ApiClient

        async with ApiClient.create(settings, storage, transport=online_transport) as first:
            await first.get("/health")

        second = ApiClient.create(settings, storage, transport=RecordingTransport(
            httpx.ASGITransport(app=build_backend())
        ))
        try:
            assert len(second.cache) == 0
            assert second.metrics is not first.metrics
        finally:
            await second.dispose()

    @pytest.mark.asyncio
    async def test_disposed_client_refuses_calls(self, settings, storage, online_transport):
        from sparkvibe.api.client import ApiClient

        api = ApiClient.create(settings, storage, transport=online_transport)
        await api.dispose()
        await api.dispose()

        assert api.closed
        with pytest.raises(RuntimeError):
            await api.get("/health")
