"""
Connection authentication.

The identity provider is an external collaborator; the gateway only needs to
know who the user is and whether they hold a premium subscription.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import aiohttp

from logging_setup import Component, get_logger

logger = get_logger(Component.AUTH)

DEMO_USER_ID = "demo-user"


@dataclass(frozen=True)
class Identity:
    user_id: str
    is_premium: bool

    @property
    def is_demo(self) -> bool:
        return self.user_id == DEMO_USER_ID


DEMO_IDENTITY = Identity(user_id=DEMO_USER_ID, is_premium=False)


class IdentityProvider(Protocol):
    async def authenticate(self, token: str) -> Optional[Identity]: ...


def extract_token(authorization: Optional[str], query_token: Optional[str]) -> Optional[str]:
    """Bearer token from the Authorization header, else the `token` query parameter."""
    if authorization:
        token = authorization.removeprefix("Bearer ").strip()
        if token:
            return token
    return query_token or None


class SupabaseIdentityProvider:
    """
    Supabase auth + `user_profiles` lookup.

    A profile with `used = true` is a premium user; a missing profile means
    not premium. Any failure yields None (authentication failed).
    """

    def __init__(self, url: str, service_key: str, *, timeout_seconds: float = 5.0):
        self.base = url.rstrip("/")
        self.service_key = service_key
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def authenticate(self, token: str) -> Optional[Identity]:
        start_ts = time.time()
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as s:
                async with s.get(
                    f"{self.base}/auth/v1/user",
                    headers={"apikey": self.service_key, "Authorization": f"Bearer {token}"},
                ) as resp:
                    if resp.status != 200:
                        logger.warning("Auth rejected", status=resp.status)
                        return None
                    user = await resp.json()

                user_id = user.get("id") if isinstance(user, dict) else None
                if not user_id or not isinstance(user_id, str):
                    logger.warning("Auth response without a user id")
                    return None

                async with s.get(
                    f"{self.base}/rest/v1/user_profiles",
                    params={"id": f"eq.{user_id}", "select": "used"},
                    headers={"apikey": self.service_key, "Authorization": f"Bearer {self.service_key}"},
                ) as resp:
                    profiles = await resp.json() if resp.status == 200 else []
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            # ValueError covers a body that is not valid JSON
            logger.error(
                "Authentication error",
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=int((time.time() - start_ts) * 1000),
            )
            return None

        profile = profiles[0] if isinstance(profiles, list) and profiles else None
        is_premium = isinstance(profile, dict) and profile.get("used") is True
        logger.info(
            "User authenticated",
            user_id=user_id,
            is_premium=is_premium,
            latency_ms=int((time.time() - start_ts) * 1000),
        )
        return Identity(user_id=user_id, is_premium=is_premium)
