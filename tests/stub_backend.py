"""Stub of the SparkVibe backend and transports for client tests."""

from typing import List, Tuple

import httpx
from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse


VALID_PASSWORD = "correct-horse"
SERVER_TOKEN = "server-token-123"


def build_backend() -> FastAPI:
    """Stub of the SparkVibe backend routes the client talks to."""
    app = FastAPI()
    app.state.fail_next = {}

    def maybe_fail(path: str):
        remaining = app.state.fail_next.get(path, 0)
        if remaining:
            app.state.fail_next[path] = remaining - 1
            return JSONResponse({"success": False, "message": "Server error"}, status_code=503)
        return None

    @app.get("/health")
    async def health():
        return maybe_fail("/health") or {"status": "healthy", "message": "SparkVibe API is running"}

    @app.get("/leaderboard")
    async def leaderboard():
        failure = maybe_fail("/leaderboard")
        if failure:
            return failure
        return {
            "success": True,
            "data": [
                {"id": "u-1", "username": "Alice", "score": 900},
                {"id": "u-2", "username": "Bob", "score": 400},
            ],
        }

    @app.post("/auth/signin")
    async def signin(request: Request):
        body = await request.json()
        if body.get("password") != VALID_PASSWORD:
            return JSONResponse(
                {"success": False, "message": "Invalid email or password"},
                status_code=401,
            )
        return {
            "success": True,
            "token": SERVER_TOKEN,
            "user": {
                "id": "u-1",
                "name": "Alice",
                "email": body["email"],
                "emailVerified": not body["email"].startswith("unverified"),
                "provider": "email",
                "totalPoints": 900,
            },
        }

    @app.post("/auth/signup")
    async def signup(request: Request):
        body = await request.json()
        if body.get("email") == "taken@example.com":
            return JSONResponse({"success": False, "message": "Email already registered"}, status_code=400)
        return {"success": True, "message": "Check your inbox to verify your email"}

    @app.post("/auth/update-profile")
    async def update_profile(request: Request):
        body = await request.json()
        return {"success": True, "user": body}

    @app.get("/user/profile")
    async def profile(authorization: str = Header(default="")):
        if authorization != f"Bearer {SERVER_TOKEN}":
            return JSONResponse({"message": "Invalid token"}, status_code=401)
        return {"success": True, "user": {"id": "u-1", "name": "Alice"}}

    @app.post("/analyze-mood")
    async def analyze_mood(request: Request):
        await request.json()
        return {"mood": "calm", "confidence": 0.95}

    @app.post("/update-points")
    async def update_points(request: Request):
        failure = maybe_fail("/update-points")
        if failure:
            return failure
        body = await request.json()
        return {"success": True, "vibePoints": body.get("points", 0)}

    @app.post("/user/sync-stats")
    async def sync_stats(request: Request):
        await request.json()
        return {"success": True}

    @app.post("/track-event")
    async def track_event(request: Request):
        body = await request.json()
        if not body.get("event"):
            return JSONResponse({"success": False, "message": "event is required"}, status_code=422)
        return {"success": True}

    @app.get("/notifications")
    async def notifications():
        return {"success": True, "data": [{"id": "n-1", "read": False}], "unreadCount": 1}

    @app.post("/notifications/read")
    async def notifications_read(request: Request):
        await request.json()
        return {"success": True}

    @app.get("/friends")
    async def friends():
        return {"success": True, "data": [{"id": "u-2", "name": "Bob"}]}

    @app.get("/challenges")
    async def challenges():
        return {"success": True, "data": []}

    return app


class RecordingTransport(httpx.AsyncBaseTransport):
    """Wraps a transport and records every request that reaches it."""

    def __init__(self, inner: httpx.AsyncBaseTransport):
        self.inner = inner
        self.requests: List[Tuple[str, str]] = []
        self.headers: List[httpx.Headers] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        self.headers.append(request.headers)
        return await self.inner.handle_async_request(request)

    def count(self, method: str, path: str) -> int:
        return self.requests.count((method, path))

    async def aclose(self):
        await self.inner.aclose()


def refuse_connection(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)
