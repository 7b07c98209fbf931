#!/usr/bin/env python3
"""Credential Providers for the DT Cloud API.

The executor never knows how a token is obtained. It asks a
CredentialProvider for a valid token before every attempt, and asks it to
refresh when there is none (or the server answered 401).

Features:
    - Tokens are considered expired one minute before their expiry
    - Refresh is serialized with an asyncio.Lock (one refresh for N waiters)
    - logout() stops automatic refresh until login() is called again
    - Basic auth for service accounts (key id + secret, never expires)
    - Static pre-issued tokens

Security Notes:
    - Tokens are kept in memory only
    - Secrets should come from environment variables (DT_SERVICE_ACCOUNT_*)
    - Logs show AccessToken.token_id (SHA-256 prefix), never the token

Example:
    >>> account = ServiceAccountCredentials.from_env()
    >>> provider = BasicAuthProvider(account)
    >>> token = await provider.get_token()
    >>> token.authorization_header
    'Basic ...'

Author: DT Cloud Client Team
"""
import asyncio
import base64
import hashlib
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError, DTError, UnauthorizedError

logger = logging.getLogger(__name__)

# Tokens this close to expiry are treated as already expired
EXPIRY_MARGIN_SECONDS = 60


@dataclass
class AccessToken:
    """A credential ready to be put in the Authorization header.

    Attributes:
        access_token: The raw token (without scheme prefix)
        expires_at: Unix timestamp when the token expires; None never expires
        token_type: Authorization scheme, "Bearer" or "Basic"
    """
    access_token: str
    expires_at: Optional[float] = None
    token_type: str = "Bearer"

    @property
    def token_id(self) -> str:
        """Safe identifier for logging (SHA-256 hash, first 8 chars)."""
        return hashlib.sha256(self.access_token.encode()).hexdigest()[:8]

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at - EXPIRY_MARGIN_SECONDS

    @property
    def time_remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(0, self.expires_at - time.time())

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"


@dataclass
class ServiceAccountCredentials:
    """Key id and secret of a service account.

    Attributes:
        email: Service account email (used by OAuth2 flows, optional for Basic auth)
        key_id: Key id created for the service account
        secret: Secret belonging to key_id
    """
    key_id: str
    secret: str
    email: Optional[str] = None

    def __repr__(self) -> str:
        return f"ServiceAccountCredentials(key_id={self.key_id!r}, email={self.email!r})"

    @classmethod
    def from_env(cls) -> "ServiceAccountCredentials":
        """Read DT_SERVICE_ACCOUNT_KEY_ID / _SECRET / _EMAIL (and a .env file).

        Raises:
            ConfigurationError: If key id or secret is missing
        """
        load_dotenv()
        key_id = os.getenv("DT_SERVICE_ACCOUNT_KEY_ID")
        secret = os.getenv("DT_SERVICE_ACCOUNT_SECRET")
        email = os.getenv("DT_SERVICE_ACCOUNT_EMAIL")

        missing = []
        if not key_id:
            missing.append("DT_SERVICE_ACCOUNT_KEY_ID")
        if not secret:
            missing.append("DT_SERVICE_ACCOUNT_SECRET")
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing_keys=missing,
            )
        return cls(key_id=key_id, secret=secret, email=email or None)


# ============================================
# Provider Interface
# ============================================

class CredentialProvider(ABC):
    """Source of access tokens for the request executor.

    Subclasses implement ``refresh()``, which must obtain a new token and
    store it with ``_store()`` (or raise). Everything else is shared.

    Attributes:
        auto_refresh: When False (after logout), no refresh is attempted and
            get_token() raises UnauthorizedError.
    """

    def __init__(self):
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()
        self.auto_refresh = True

    @abstractmethod
    async def refresh(self) -> None:
        """Obtain a fresh token and store it. Raises on failure."""

    def current_token(self) -> Optional[AccessToken]:
        """Return the stored token if it is still valid, else None."""
        if self._token and not self._token.is_expired:
            return self._token
        return None

    def _store(self, token: AccessToken) -> None:
        self._token = token
        remaining = token.time_remaining
        expiry = "never expires" if remaining is None else f"expires in {remaining:.0f}s"
        logger.info(f"Access token stored (id={token.token_id}), {expiry}")

    def invalidate(self) -> None:
        """Drop the stored token so the next get_token() refreshes."""
        self._token = None

    async def get_token(self, force_refresh: bool = False) -> AccessToken:
        """Return a valid token, refreshing if needed.

        Args:
            force_refresh: Refresh even if the stored token looks valid
                (used after the server rejected it with 401)

        Raises:
            UnauthorizedError: If logged out, or the refresh failed
        """
        if not self.auto_refresh:
            raise UnauthorizedError("Not logged in, call login() on the credential provider")

        stale = self._token
        if not force_refresh:
            token = self.current_token()
            if token:
                return token

        async with self._lock:
            # Another waiter may have refreshed while we queued for the lock
            token = self.current_token()
            if token and (not force_refresh or token is not stale):
                return token

            logger.debug(f"Refreshing credentials ({self.__class__.__name__})")
            try:
                await self.refresh()
            except DTError:
                raise
            except Exception as e:
                raise UnauthorizedError(f"Failed to obtain access token: {e}", cause=e)

            token = self.current_token()
            if token is None:
                raise UnauthorizedError("Credential provider refreshed without a valid token")
            return token

    async def login(self) -> None:
        """Fetch an initial token and enable automatic refresh."""
        self.auto_refresh = True
        try:
            await self.get_token(force_refresh=True)
        except DTError:
            self.auto_refresh = False
            raise

    async def logout(self) -> None:
        """Forget the token and stop refreshing until login() is called."""
        self._token = None
        self.auto_refresh = False
        logger.info(f"Logged out ({self.__class__.__name__})")

    @property
    def token_info(self) -> Optional[dict]:
        """Info about the stored token for debugging (never the token itself)."""
        if not self._token:
            return None
        return {
            "token_id": self._token.token_id,
            "token_type": self._token.token_type,
            "is_expired": self._token.is_expired,
            "time_remaining_seconds": self._token.time_remaining,
        }


# ============================================
# Providers
# ============================================

class StaticTokenProvider(CredentialProvider):
    """Serves a pre-issued token; cannot refresh once it expires."""

    def __init__(self, access_token: str, expires_at: Optional[float] = None, token_type: str = "Bearer"):
        super().__init__()
        self._issued = AccessToken(access_token, expires_at, token_type)
        self._token = self._issued

    async def refresh(self) -> None:
        if self._issued.is_expired:
            raise UnauthorizedError("Static access token has expired")
        self._store(self._issued)


class BasicAuthProvider(CredentialProvider):
    """Basic auth from a service account key: ``Basic base64(key_id:secret)``."""

    def __init__(self, account: ServiceAccountCredentials):
        super().__init__()
        self.account = account

    async def refresh(self) -> None:
        raw = f"{self.account.key_id}:{self.account.secret}".encode("utf-8")
        self._store(AccessToken(base64.b64encode(raw).decode("ascii"), None, "Basic"))
