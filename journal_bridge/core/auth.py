"""
Single shared-credential basic authentication.

The check runs as Starlette authentication middleware so it covers API
routes, the static UI and the WebSocket upgrade with one configuration.
"""

import base64
import binascii
import secrets
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel
from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    AuthenticationError as StarletteAuthenticationError,
    SimpleUser,
)
from starlette.requests import HTTPConnection
from starlette.responses import JSONResponse

from journal_bridge.core.config import Settings
from journal_bridge.core.exceptions import InvalidCredentialsError
from journal_bridge.core.logging import logger


class UserPrincipal(BaseModel):
    username: str


class AuthStrategy(ABC):
    @abstractmethod
    def authenticate(self, username: str, password: str) -> Optional[UserPrincipal]:
        pass


class StaticCredentialAuthStrategy(AuthStrategy):
    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password

    def authenticate(self, username: str, password: str) -> Optional[UserPrincipal]:
        # Evaluate both comparisons so timing does not reveal which one failed
        user_ok = secrets.compare_digest(username.encode(), self.username.encode())
        password_ok = secrets.compare_digest(password.encode(), self.password.encode())
        if user_ok and password_ok:
            return UserPrincipal(username=username)
        return None


def get_auth_strategy(settings: Settings) -> AuthStrategy:
    return StaticCredentialAuthStrategy(settings.auth_username, settings.auth_password)


def parse_basic_authorization(header: Optional[str]) -> Optional[tuple]:
    """
    Decode an ``Authorization: Basic`` header.

    Returns:
        (username, password) or None if the header is absent or malformed
    """
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, separator, password = decoded.partition(":")
    if not separator:
        return None
    return username, password


class BasicAuthBackend(AuthenticationBackend):
    def __init__(self, strategy: AuthStrategy):
        self.strategy = strategy

    async def authenticate(self, conn: HTTPConnection):
        credentials = parse_basic_authorization(conn.headers.get("Authorization"))
        if credentials is None:
            raise StarletteAuthenticationError("Missing or malformed credentials")

        user = self.strategy.authenticate(*credentials)
        if user is None:
            logger.warning(f"Rejected credentials for user '{credentials[0]}' from {conn.client}")
            raise StarletteAuthenticationError("Invalid credentials")

        return AuthCredentials(["authenticated"]), SimpleUser(user.username)


def unauthorized_handler(realm: str):
    """Build the on_error callback used by AuthenticationMiddleware."""

    def on_error(conn: HTTPConnection, exc: Exception) -> JSONResponse:
        error = InvalidCredentialsError()
        return JSONResponse(
            status_code=error.status_code,
            content={
                "error": {
                    "code": error.code,
                    "message": error.message,
                    "details": error.details
                },
                "status": "error"
            },
            headers={"WWW-Authenticate": f'Basic realm="{realm}"'}
        )

    return on_error
