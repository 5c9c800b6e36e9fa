"""
Identity Client
Session introspection and password verification against an identity provider.

Two implementations:
  HttpIdentityClient   -- Supabase/GoTrue-compatible HTTP auth API (httpx)
  LocalIdentityClient  -- customers table (bcrypt hashes) + HS256 JWTs (PyJWT)

Neither implementation replaces the caller's session when verifying a
password: tokens the provider returns on a successful check are dropped.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import bcrypt
import httpx
import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from eminent_bank.db import crud
from eminent_bank.exceptions import IdentityProviderError, InvalidCredentialsError, InvalidTokenError
from eminent_bank.logging_config import get_logger

logger = get_logger("eminent_bank.clients.identity")

INVALID_LOGIN_MARKER = "Invalid login credentials"


@dataclass(frozen=True)
class IdentityUser:
    user_id: UUID
    email: str


class IdentityClient(ABC):
    @abstractmethod
    async def get_user(self, access_token: str) -> IdentityUser:
        """
        Resolve an access token to the signed-in user.
        Raises InvalidTokenError when the token is not accepted.
        """

    @abstractmethod
    async def verify_password(self, email: str, password: str) -> None:
        """
        Check ``password`` for ``email`` without touching any session.
        Raises InvalidCredentialsError on mismatch, IdentityProviderError otherwise.
        """

    async def close(self) -> None:
        return None


class HttpIdentityClient(IdentityClient):
    """
    HTTP client for a GoTrue-style auth API.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"apikey": api_key} if api_key else {}
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except Exception:
            logger.exception("Error closing identity httpx client")

    async def get_user(self, access_token: str) -> IdentityUser:
        url = f"{self.base_url}/auth/v1/user"
        try:
            resp = await self._client.get(url, headers={"Authorization": f"Bearer {access_token}"})
        except httpx.RequestError as e:
            logger.exception("Identity provider unreachable: %s", e)
            raise IdentityProviderError("Identity provider unreachable") from e

        if resp.status_code in (401, 403):
            raise InvalidTokenError("Session expired or invalid. Please log in.")
        if resp.status_code >= 400:
            raise IdentityProviderError(f"Identity provider error: {resp.status_code} {self._error_text(resp)}")

        data = resp.json()
        try:
            return IdentityUser(user_id=UUID(str(data["id"])), email=data["email"])
        except (KeyError, ValueError) as e:
            raise IdentityProviderError(f"Unexpected user payload from identity provider: {e}") from e

    async def verify_password(self, email: str, password: str) -> None:
        url = f"{self.base_url}/auth/v1/token"
        try:
            resp = await self._client.post(
                url,
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except httpx.RequestError as e:
            logger.exception("Identity provider unreachable during password check: %s", e)
            raise IdentityProviderError("Identity provider unreachable") from e

        logger.info("Identity POST %s -> %s", url, resp.status_code)
        if resp.status_code == 200:
            # Fresh tokens are intentionally dropped; the caller keeps its session
            return
        detail = self._error_text(resp)
        if resp.status_code == 400 and INVALID_LOGIN_MARKER.lower() in detail.lower():
            raise InvalidCredentialsError(INVALID_LOGIN_MARKER)
        raise IdentityProviderError(detail or f"HTTP {resp.status_code}")

    @staticmethod
    def _error_text(resp: httpx.Response) -> str:
        try:
            body: Dict[str, Any] = resp.json()
        except ValueError:
            return resp.text
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
        return resp.text


async def hash_password(password: str) -> str:
    hashed = await asyncio.to_thread(bcrypt.hashpw, password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


class LocalIdentityClient(IdentityClient):
    """
    Identity backed by the service's own customers table.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        secret: str,
        algorithm: str = "HS256",
        token_ttl_minutes: int = 60,
    ):
        self._session_factory = session_factory
        self.secret = secret
        self.algorithm = algorithm
        self.token_ttl = timedelta(minutes=token_ttl_minutes)

    def issue_token(self, user_id: UUID, email: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "iat": now,
            "exp": now + self.token_ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    async def login(self, email: str, password: str) -> str:
        """Verify credentials and return a fresh access token."""
        await self.verify_password(email, password)
        async with self._session_factory() as db:
            customer = await crud.get_customer_by_email(db, email)
        return self.issue_token(customer.user_uuid, customer.email)

    async def get_user(self, access_token: str) -> IdentityUser:
        try:
            payload = jwt.decode(access_token, self.secret, algorithms=[self.algorithm])
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Session expired or invalid. Please log in.") from e
        try:
            return IdentityUser(user_id=UUID(payload["sub"]), email=payload["email"])
        except (KeyError, ValueError) as e:
            raise InvalidTokenError("Session expired or invalid. Please log in.") from e

    async def verify_password(self, email: str, password: str) -> None:
        try:
            async with self._session_factory() as db:
                customer = await crud.get_customer_by_email(db, email)
        except SQLAlchemyError as e:
            logger.exception("Credential lookup failed for %s", email)
            raise IdentityProviderError(f"Credential lookup failed: {e}") from e

        if customer is None or not customer.password_hash:
            raise InvalidCredentialsError(INVALID_LOGIN_MARKER)
        # bcrypt is CPU-bound; keep it off the event loop
        matches = await asyncio.to_thread(
            bcrypt.checkpw, password.encode("utf-8"), customer.password_hash.encode("utf-8")
        )
        if not matches:
            raise InvalidCredentialsError(INVALID_LOGIN_MARKER)
