from __future__ import annotations

import logging
from secrets import token_urlsafe

import httpx
from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from forge_client.exceptions import ForgeApiError
from forge_client.schemas.oauth import Bearer, UserProfile
from forge_client.services.oauth_client import ThreeLeggedAuth, fetch_user_profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

SESSION_COOKIE = "session_id"
LOGIN_SCOPE = "data:read user-profile:read"


class _StaticTokenAuthenticator:
    """Serves an already exchanged token so the profile call does not spend the refresh token."""

    def __init__(self, bearer: Bearer, host: str) -> None:
        self._bearer = bearer
        self._host = host

    def get_token(self, scope: str) -> Bearer:
        del scope
        return self._bearer

    def host_path(self) -> str:
        return self._host


def get_three_legged_auth() -> ThreeLeggedAuth:
    try:
        return ThreeLeggedAuth.from_env()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


def _sessions(request: Request) -> dict[str, UserProfile]:
    return request.app.state.user_sessions


@router.get("/")
def login(auth: ThreeLeggedAuth = Depends(get_three_legged_auth)) -> RedirectResponse:
    return RedirectResponse(auth.authorize_url(LOGIN_SCOPE), status_code=status.HTTP_302_FOUND)


@router.get("/cb")
def oauth_callback(
    request: Request,
    code: str = Query(min_length=1),
    auth: ThreeLeggedAuth = Depends(get_three_legged_auth),
) -> RedirectResponse:
    try:
        bearer = auth.exchange_code(code)
        profile = fetch_user_profile(_StaticTokenAuthenticator(bearer, auth.host_path()))
    except ForgeApiError as exc:
        logger.warning("3-legged login failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"APS login failed: {exc}",
        ) from exc
    except httpx.RequestError as exc:
        logger.warning("3-legged login could not reach APS: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"APS is unreachable: {exc}",
        ) from exc

    session_id = token_urlsafe(24)
    _sessions(request)[session_id] = profile
    logger.info("User %s logged in", profile.user_id)

    response = RedirectResponse("/redirect", status_code=status.HTTP_302_FOUND)
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True)
    return response


@router.get("/redirect", response_model=None)
def greet_user(
    request: Request,
    session_id: str | None = Cookie(default=None),
) -> PlainTextResponse | RedirectResponse:
    profile = _sessions(request).get(session_id or "")
    if profile is None:
        response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
        response.delete_cookie(SESSION_COOKIE)
        return response
    return PlainTextResponse(f"Hi {profile.first_name} {profile.last_name} [{profile.email_id}]")
