"""Async Supabase Auth (GoTrue) client and request token extraction."""
from __future__ import annotations
import base64
import json
import logging
from dataclasses import dataclass
from typing import Mapping

import aiohttp

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str = ""


class SupabaseAuthError(Exception):
    """The auth service could not be reached or answered with a server error."""


class SupabaseAuthClient:
    def __init__(self, base_url: str, api_key: str, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def get_user(self, access_token: str) -> AuthUser | None:
        """Validate an access token. Returns None for a rejected token."""
        if not self.base_url:
            raise SupabaseAuthError("Supabase URL is not configured")
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token}",
        }
        try:
            async with self.session.get(f"{self.base_url}/auth/v1/user", headers=headers) as resp:
                if resp.status in (401, 403):
                    return None
                if resp.status >= 400:
                    text = await resp.text()
                    raise SupabaseAuthError(f"Auth service returned {resp.status}: {text[:200]}")
                data = await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise SupabaseAuthError(str(e)) from e

        user_id = (data or {}).get("id")
        if not user_id:
            return None
        return AuthUser(id=user_id, email=data.get("email") or "")


def _decode_session_cookie(raw: str) -> str | None:
    if raw.startswith("base64-"):
        try:
            padded = raw[len("base64-"):]
            padded += "=" * (-len(padded) % 4)
            raw = base64.urlsafe_b64decode(padded).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    # Older helpers stored [access_token, refresh_token, ...]
    if isinstance(data, list):
        return data[0] if data and isinstance(data[0], str) else None
    if isinstance(data, dict):
        token = data.get("access_token")
        return token if isinstance(token, str) else None
    return None


def extract_access_token(headers: Mapping[str, str], cookies: Mapping[str, str]) -> str | None:
    """Find the caller's access token in the Authorization header or Supabase cookies."""
    auth = headers.get("authorization") or ""
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()

    if cookies.get(ACCESS_TOKEN_COOKIE):
        return cookies[ACCESS_TOKEN_COOKIE]

    # sb-<project-ref>-auth-token, possibly split into .0, .1, ... chunks
    chunks: dict[str, dict[int, str]] = {}
    for name, value in cookies.items():
        if not name.startswith("sb-"):
            continue
        base, _, suffix = name.rpartition(".")
        if base.endswith("-auth-token") and suffix.isdigit():
            chunks.setdefault(base, {})[int(suffix)] = value
        elif name.endswith("-auth-token"):
            chunks.setdefault(name, {})[0] = value

    for parts in chunks.values():
        joined = "".join(parts[i] for i in sorted(parts))
        token = _decode_session_cookie(joined)
        if token:
            return token
    return None
