"""Authentication against the SparkVibe backend."""

import logging
from typing import Any, Dict, Optional

from sparkvibe.api.client import ApiClient
from sparkvibe.api.errors import ApiError, ApplicationError
from sparkvibe.fallback.operations import NoFallbackAvailable

logger = logging.getLogger(__name__)

UNVERIFIED_MESSAGE = (
    "Please verify your email address before signing in. "
    "Check your inbox for the verification link."
)


class AuthError(Exception):
    """Exception raised when an auth action fails, with a message for the user."""


def is_trusted_user(user: Optional[Dict[str, Any]]) -> bool:
    """Verified email users, guests, Google and demo users may hold a session."""
    if not user:
        return False
    return bool(
        user.get("emailVerified")
        or user.get("isGuest")
        or user.get("provider") in ("google", "demo")
    )


class AuthService:
    """Handle email sign-in, sign-up and the stored session."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.storage = api.storage

    async def sign_up_with_email(self, email: str, password: str, name: Optional[str] = None) -> Dict:
        """
        Create an account.

        The backend expects email verification before the first sign-in, so
        a session is only stored when the response carries one.
        """
        try:
            return await self.api.post("/auth/signup", {
                "name": name,
                "email": email,
                "password": password,
            })
        except ApplicationError as e:
            raise AuthError(str(e)) from e
        except (ApiError, NoFallbackAvailable) as e:
            logger.error(f"Email sign up failed: {e}")
            raise AuthError("Email sign up failed") from e

    async def sign_in_with_email(self, email: str, password: str) -> Dict:
        """
        Sign in and return the user.

        Raises:
            AuthError: Wrong credentials, unverified email, or the backend
                is unreachable while demo mode is off
        """
        try:
            result = await self.api.post("/auth/signin", {"email": email, "password": password})
        except ApplicationError as e:
            raise AuthError(str(e) or "Invalid email or password") from e
        except (ApiError, NoFallbackAvailable) as e:
            logger.error(f"Email sign in failed: {e}")
            raise AuthError("Email sign in failed") from e

        if not isinstance(result, dict) or not result.get("success"):
            message = result.get("message") if isinstance(result, dict) else None
            raise AuthError(message or "Invalid email or password")

        user = result.get("user") or {}
        if not is_trusted_user(user):
            self.storage.clear_session()
            raise AuthError(UNVERIFIED_MESSAGE)

        if result.get("fallback"):
            logger.info(f"Signed in {user.get('email')} in demo mode")
        return user

    def sign_out(self):
        """Forget the stored session and everything cached for it."""
        self.storage.clear_session()
        self.api.clear_cache()

    def is_authenticated(self) -> bool:
        return bool(self.get_auth_token()) and is_trusted_user(self.get_current_user())

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        return self.storage.get_user()

    def get_auth_token(self) -> Optional[str]:
        return self.storage.get_token()

    async def update_profile(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Update profile fields on the backend and merge them into the stored user."""
        try:
            result = await self.api.post("/auth/update-profile", changes)
        except (ApiError, NoFallbackAvailable) as e:
            logger.error(f"Profile update failed: {e}")
            raise AuthError(str(e) or "Profile update failed") from e

        if not isinstance(result, dict) or not result.get("success"):
            message = result.get("message") if isinstance(result, dict) else None
            raise AuthError(message or "Profile update failed")

        user = {**(self.get_current_user() or {}), **(result.get("user") or {})}
        self.storage.set_user(user)
        self.api.delete_cache_key("/user/profile")
        return user
