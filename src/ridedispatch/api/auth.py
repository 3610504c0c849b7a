"""Bearer token authentication for the HTTP and WebSocket surfaces."""

import hmac
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Annotated, Protocol

from fastapi import Depends, Header, HTTPException, Request

from ..settings import APISettings


@dataclass(frozen=True)
class Principal:
    """The authenticated rider a request acts for."""

    user_id: str


class Identity(Protocol):
    """Boundary to the identity provider.

    ``authenticate`` checks login credentials and ``verify`` resolves an
    opaque bearer token; both return None when the input is not accepted.
    """

    def authenticate(self, credentials: Mapping[str, str]) -> Principal | None: ...

    def verify(self, token: str) -> Principal | None: ...


class StaticTokenIdentity:
    """Identity backed by a fixed token -> user id table from configuration."""

    def __init__(self, tokens: dict[str, str]) -> None:
        self._tokens = dict(tokens)

    @classmethod
    def from_settings(cls, settings: APISettings) -> "StaticTokenIdentity":
        return cls(settings.token_map())

    def authenticate(self, credentials: Mapping[str, str]) -> Principal | None:
        """Accept ``{"token": ..., "user_id": ...}`` when the token maps to that user."""
        principal = self.verify(credentials.get("token", ""))
        if principal is None or principal.user_id != credentials.get("user_id"):
            return None
        return principal

    def verify(self, token: str) -> Principal | None:
        if not token:
            return None
        for known, user_id in self._tokens.items():
            if hmac.compare_digest(known.encode(), token.encode()):
                return Principal(user_id=user_id)
        return None


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_principal(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Principal:
    """Validates the bearer token and returns the rider it belongs to."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=401, detail="Missing token", headers={"WWW-Authenticate": "Bearer"}
        )

    identity: Identity = request.app.state.identity
    principal = identity.verify(token)
    if principal is None:
        raise HTTPException(
            status_code=401, detail="Invalid token", headers={"WWW-Authenticate": "Bearer"}
        )
    return principal


PrincipalDep = Annotated[Principal, Depends(require_principal)]
