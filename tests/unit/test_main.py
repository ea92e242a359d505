"""Tests for the FastAPI application factory module."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from catalog_api.core.config import Settings
from catalog_api.lib.downstream import CloudflarePurgeClient
from catalog_api.lib.links import LinkRewriter
from catalog_api.main import build_link_rewriter, build_purge_client, create_app


class TestCreateApp:
    """Tests for create_app."""

    @pytest.fixture
    def app(self, env_settings: Settings) -> FastAPI:
        return create_app()

    def test_app_is_created(self, app: FastAPI) -> None:
        assert app.title == "Dataset Catalog API"
        assert isinstance(app.state.link_rewriter, LinkRewriter)

    def test_app_has_openapi_schema(self, app: FastAPI) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/openapi.json")
        assert response.status_code == 200
        assert "/v1/datasets/{dataset_id}" in response.json()["paths"]

    def test_value_error_handler_returns_400(self, app: FastAPI) -> None:
        @app.get("/boom")
        async def boom() -> dict:
            raise ValueError("bad input")

        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/boom")
        assert response.status_code == 400
        assert response.json() == {"detail": "bad input"}


class TestBuilders:
    def test_build_link_rewriter(self, settings: Settings) -> None:
        rewriter = build_link_rewriter(settings)
        assert isinstance(rewriter, LinkRewriter)

    def test_purge_client_disabled_by_default(self, settings: Settings) -> None:
        assert build_purge_client(settings) is None

    def test_purge_client_enabled(self, settings: Settings) -> None:
        settings.cloudflare_enabled = True
        settings.cloudflare_api_token = "token"
        settings.cloudflare_zone_id = "zone"
        assert isinstance(build_purge_client(settings), CloudflarePurgeClient)
