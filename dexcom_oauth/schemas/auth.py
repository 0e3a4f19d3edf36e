"""Schemas related to OAuth flows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AuthorizationResponse(BaseModel):
    """Returned by the login endpoint when the caller opts out of redirects."""

    authorization_url: str = Field(..., description="Dexcom consent URL to visit.")
    state: str = Field(..., description="Opaque state token embedded in the URL.")


class CallbackResult(BaseModel):
    status: str = Field("authenticated", description="Outcome of the code exchange.")


class AuthStatus(BaseModel):
    """Whether credentials are currently stored."""

    authenticated: bool
    message: str


class LogoutResponse(BaseModel):
    message: str


__all__ = ["AuthStatus", "AuthorizationResponse", "CallbackResult", "LogoutResponse"]
