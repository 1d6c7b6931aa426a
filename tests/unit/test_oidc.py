"""Tests for GitHub OIDC acquisition and the EnforceAuth token exchange."""

from __future__ import annotations

import os
from collections.abc import Callable
from unittest.mock import patch
from urllib.parse import parse_qs

import httpx
import pytest

from enforceauth_deploy.core.oidc import (
    TOKEN_EXCHANGE_GRANT_TYPE,
    OIDCError,
    TokenExchangeError,
    authenticate,
    exchange_token,
    get_github_oidc_token,
)

OIDC_ENV = {
    "ACTIONS_ID_TOKEN_REQUEST_URL": "https://token.actions.test/oidc?api-version=2.0",
    "ACTIONS_ID_TOKEN_REQUEST_TOKEN": "runtime-token",
}


def _http(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestGetGithubOidcToken:
    def test_missing_permission(self) -> None:
        with patch.dict(os.environ, {}, clear=True), pytest.raises(OIDCError) as exc:
            get_github_oidc_token("https://api.test")
        assert "id-token: write" in str(exc.value)

    def test_requests_with_audience(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"value": "gh-jwt"})

        with patch.dict(os.environ, OIDC_ENV, clear=True):
            token = get_github_oidc_token("https://api.test", client=_http(handler))

        assert token == "gh-jwt"
        assert captured[0].url.params["audience"] == "https://api.test"
        assert captured[0].headers["Authorization"] == "Bearer runtime-token"

    def test_empty_token(self) -> None:
        with patch.dict(os.environ, OIDC_ENV, clear=True), pytest.raises(OIDCError, match="empty"):
            get_github_oidc_token(
                "https://api.test",
                client=_http(lambda _r: httpx.Response(200, json={"value": ""})),
            )

    def test_http_failure(self) -> None:
        with patch.dict(os.environ, OIDC_ENV, clear=True), pytest.raises(OIDCError):
            get_github_oidc_token(
                "https://api.test",
                client=_http(lambda _r: httpx.Response(500)),
            )


class TestExchangeToken:
    def test_form_body(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"access_token": "ea-token", "expires_in": 900})

        result = exchange_token("https://api.test/", "gh-jwt", "ent_1", client=_http(handler))

        assert result.access_token == "ea-token"
        assert result.expires_in == 900
        request = captured[0]
        assert str(request.url) == "https://api.test/v1/auth/oidc/token"
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        assert form["grant_type"] == TOKEN_EXCHANGE_GRANT_TYPE
        assert form["subject_token"] == "gh-jwt"
        assert form["entity_id"] == "ent_1"

    @pytest.mark.parametrize(
        ("error", "fragment"),
        [
            ("invalid_grant", "Token validation failed"),
            ("unauthorized_client", "No matching trust policy"),
            ("access_denied", "Access denied"),
        ],
    )
    def test_remediation_messages(self, error: str, fragment: str) -> None:
        body = {"error": error, "error_description": "details here"}
        with pytest.raises(TokenExchangeError) as exc:
            exchange_token(
                "https://api.test",
                "gh-jwt",
                "ent_1",
                client=_http(lambda _r: httpx.Response(400, json=body)),
            )
        assert fragment in str(exc.value)
        assert "details here" in str(exc.value)

    def test_non_json_error(self) -> None:
        with pytest.raises(TokenExchangeError, match="HTTP 502: bad gateway"):
            exchange_token(
                "https://api.test",
                "gh-jwt",
                "ent_1",
                client=_http(lambda _r: httpx.Response(502, text="bad gateway")),
            )

    def test_missing_access_token(self) -> None:
        with pytest.raises(TokenExchangeError, match="missing access_token"):
            exchange_token(
                "https://api.test",
                "gh-jwt",
                "ent_1",
                client=_http(lambda _r: httpx.Response(200, json={"expires_in": 60})),
            )

    def test_invalid_json(self) -> None:
        with pytest.raises(TokenExchangeError, match="invalid JSON"):
            exchange_token(
                "https://api.test",
                "gh-jwt",
                "ent_1",
                client=_http(lambda _r: httpx.Response(200, text="nope")),
            )


class TestAuthenticate:
    def test_masks_access_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"value": "gh-jwt"})
            return httpx.Response(200, json={"access_token": "ea-token"})

        with (
            patch.dict(os.environ, OIDC_ENV, clear=True),
            patch("enforceauth_deploy.core.oidc.set_secret") as mock_secret,
        ):
            token = authenticate("https://api.test", "ent_1", client=_http(handler))

        assert token == "ea-token"
        mock_secret.assert_called_once_with("ea-token")
