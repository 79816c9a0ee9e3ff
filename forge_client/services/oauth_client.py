from __future__ import annotations

from typing import Protocol

import httpx

from forge_client.config import get_client_id, get_client_secret, get_host, get_redirect_uri
from forge_client.exceptions import raise_for_forge_status
from forge_client.schemas.oauth import Bearer, UserProfile
from forge_client.services.http import bearer_headers, client_scope

DEFAULT_AUTH_PATH = "/authentication/v2"
USER_PROFILE_PATH = "/userprofile/v1/users/@me"
USER_PROFILE_SCOPE = "user-profile:read"


class ForgeAuthenticator(Protocol):
    """Capability shared by 2-legged and 3-legged contexts."""

    def get_token(self, scope: str) -> Bearer: ...

    def host_path(self) -> str: ...


class _AuthData:
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        host: str | None = None,
        auth_path: str = DEFAULT_AUTH_PATH,
        client: httpx.Client | None = None,
    ) -> None:
        if not client_id or not client_secret:
            raise ValueError("APS credentials missing: set FORGE_CLIENT_ID and FORGE_CLIENT_SECRET")
        self.client_id = client_id
        self.client_secret = client_secret
        self.host = (host or get_host()).rstrip("/")
        self.auth_path = auth_path
        self._client = client

    def host_path(self) -> str:
        return self.host

    def set_host_path(self, host: str) -> None:
        self.host = host.rstrip("/")

    def _request_token(self, form: dict[str, str]) -> Bearer:
        with client_scope(self._client) as client:
            response = client.post(
                f"{self.host}{self.auth_path}/token",
                data=form,
                auth=(self.client_id, self.client_secret),
                headers={"Accept": "application/json"},
            )
            raise_for_forge_status(response)
            return Bearer.model_validate(response.json())


class TwoLeggedAuth(_AuthData):
    @classmethod
    def from_env(cls, *, client: httpx.Client | None = None) -> TwoLeggedAuth:
        return cls(
            client_id=get_client_id() or "",
            client_secret=get_client_secret() or "",
            client=client,
        )

    def get_token(self, scope: str) -> Bearer:
        """Request a client-credentials token; ``scope`` is space separated, e.g. "data:read data:write"."""
        return self._request_token({"grant_type": "client_credentials", "scope": scope})


class ThreeLeggedAuth(_AuthData):
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        refresh_token: str | None = None,
        host: str | None = None,
        auth_path: str = DEFAULT_AUTH_PATH,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(
            client_id=client_id,
            client_secret=client_secret,
            host=host,
            auth_path=auth_path,
            client=client,
        )
        self.redirect_uri = redirect_uri
        self.refresh_token = refresh_token

    @classmethod
    def from_env(cls, *, refresh_token: str | None = None, client: httpx.Client | None = None) -> ThreeLeggedAuth:
        return cls(
            client_id=get_client_id() or "",
            client_secret=get_client_secret() or "",
            redirect_uri=get_redirect_uri(),
            refresh_token=refresh_token,
            client=client,
        )

    def authorize_url(self, scope: str, state: str = "") -> str:
        """URL the end user is redirected to in order to grant consent for ``scope``."""
        url = httpx.URL(
            f"{self.host}{self.auth_path}/authorize",
            params={
                "client_id": self.client_id,
                "response_type": "code",
                "redirect_uri": self.redirect_uri,
                "scope": scope,
                "state": state,
            },
        )
        return str(url)

    def exchange_code(self, code: str) -> Bearer:
        bearer = self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            }
        )
        self.refresh_token = bearer.refresh_token or self.refresh_token
        return bearer

    def refresh_access_token(self, refresh_token: str, scope: str) -> Bearer:
        return self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "scope": scope,
            }
        )

    def get_token(self, scope: str) -> Bearer:
        if not self.refresh_token:
            raise ValueError("No refresh token available: call exchange_code() first")
        bearer = self.refresh_access_token(self.refresh_token, scope)
        # Refresh tokens are single-use; keep the rotated one.
        self.refresh_token = bearer.refresh_token or self.refresh_token
        return bearer


def fetch_user_profile(
    authenticator: ForgeAuthenticator,
    *,
    client: httpx.Client | None = None,
) -> UserProfile:
    bearer = authenticator.get_token(USER_PROFILE_SCOPE)
    with client_scope(client) as http_client:
        response = http_client.get(
            f"{authenticator.host_path()}{USER_PROFILE_PATH}",
            headers=bearer_headers(bearer.access_token),
        )
        raise_for_forge_status(response)
        return UserProfile.model_validate(response.json())
