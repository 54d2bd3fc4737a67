"""Password sign-in against the hosted auth endpoint, with state observers."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Literal

import httpx
from pydantic import BaseModel

from feedback_kiosk.config import RemoteConfig
from feedback_kiosk.core.events import EventEmitter, Handler, Unsubscribe
from feedback_kiosk.errors import RemoteServiceError
from feedback_kiosk.remote.client import NETWORK_ERROR_CODE, error_from_response

logger = logging.getLogger(__name__)

AuthEvent = Literal["SIGNED_IN", "SIGNED_OUT"]


class AuthSession(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    user_id: str | None = None
    email: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))


class AuthStateChange(BaseModel):
    event: AuthEvent
    session: AuthSession | None = None


class AuthClient:
    """Holds at most one session; observers hear every sign-in and sign-out."""

    def __init__(self, config: RemoteConfig, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(config.timeout_s))
        self._owns_http = http_client is None
        self._session: AuthSession | None = None
        self._changes: EventEmitter[AuthStateChange] = EventEmitter("auth_state")

    @property
    def auth_url(self) -> str:
        return f"{self._config.url}/auth/v1"

    @property
    def session(self) -> AuthSession | None:
        return self._session

    def access_token(self) -> str | None:
        if self._session is None or self._session.is_expired():
            return None
        return self._session.access_token

    def on_auth_state_change(self, handler: Handler[AuthStateChange]) -> Unsubscribe:
        return self._changes.subscribe(handler)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        try:
            response = await self._http.post(
                f"{self.auth_url}/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers={"apikey": self._config.anon_key},
            )
        except httpx.HTTPError as exc:
            raise RemoteServiceError("sign-in request failed", code=NETWORK_ERROR_CODE) from exc
        if response.status_code >= 400:
            raise error_from_response(response)

        body = response.json()
        user = body.get("user") or {}
        expires_in = body.get("expires_in")
        session = AuthSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_at=datetime.now(UTC) + timedelta(seconds=int(expires_in)) if expires_in else None,
            user_id=user.get("id"),
            email=user.get("email"),
        )
        self._session = session
        logger.info("Signed in as %s", session.email or session.user_id)
        await self._changes.emit(AuthStateChange(event="SIGNED_IN", session=session))
        return session

    async def sign_out(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        try:
            response = await self._http.post(
                f"{self.auth_url}/logout",
                headers={
                    "apikey": self._config.anon_key,
                    "Authorization": f"Bearer {session.access_token}",
                },
            )
            if response.status_code >= 400:
                logger.warning("Remote sign-out returned HTTP %d", response.status_code)
        except httpx.HTTPError:
            logger.warning("Remote sign-out failed; local session cleared anyway")
        await self._changes.emit(AuthStateChange(event="SIGNED_OUT"))

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()


__all__ = ["AuthClient", "AuthEvent", "AuthSession", "AuthStateChange"]
