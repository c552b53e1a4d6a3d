"""Pytest configuration and shared fixtures."""

import httpx
import pytest
import pytest_asyncio

from stub_backend import RecordingTransport, build_backend, refuse_connection


@pytest.fixture
def storage():
    """In-memory local storage."""
    from sparkvibe.services.storage import LocalStorage

    return LocalStorage()


@pytest.fixture
def settings():
    """Settings with fast pacing and retries for tests."""
    from sparkvibe.config import Settings

    return Settings(
        _env_file=None,
        api_url="http://testserver",
        min_request_interval=0.01,
        queue_cooldown=0.0,
        retry_base_delay=0.01,
        retry_max_delay=0.02,
        get_retries=2,
        post_retries=0,
    )


@pytest.fixture
def demo_settings(settings):
    return settings.model_copy(update={"demo_mode_enabled": True})


@pytest.fixture
def backend():
    return build_backend()


@pytest.fixture
def online_transport(backend):
    return RecordingTransport(httpx.ASGITransport(app=backend))


@pytest.fixture
def offline_transport():
    return RecordingTransport(httpx.MockTransport(refuse_connection))


@pytest_asyncio.fixture
async def api(settings, storage, online_transport):
    """Client talking to the stub backend."""
    from sparkvibe.api.client import ApiClient

    client = ApiClient.create(settings, storage, transport=online_transport)
    yield client
    await client.dispose()


@pytest_asyncio.fixture
async def offline_api(settings, storage, offline_transport):
    """Client whose every connection attempt is refused, demo mode off."""
    from sparkvibe.api.client import ApiClient

    client = ApiClient.create(settings, storage, transport=offline_transport)
    yield client
    await client.dispose()


@pytest_asyncio.fixture
async def demo_api(demo_settings, storage, offline_transport):
    """Offline client with demo mode enabled."""
    from sparkvibe.api.client import ApiClient

    client = ApiClient.create(demo_settings, storage, transport=offline_transport)
    yield client
    await client.dispose()


@pytest.fixture
def signed_in_user():
    return {
        "id": "u-1",
        "name": "Alice",
        "email": "alice@example.com",
        "emailVerified": True,
        "provider": "email",
        "totalPoints": 1500,
        "streak": 3,
        "stats": {"totalPoints": 1500, "streak": 3, "level": 2},
    }
