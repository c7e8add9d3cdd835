"""Unit tests for the local development server."""

import pytest

from serve_local import FUNCTION_NAMES, URL_PREFIX, create_app


@pytest.fixture
def client():
    return create_app().test_client()


class TestServeLocal:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "ok"

    def test_function_routes_registered(self):
        rules = {rule.rule for rule in create_app().url_map.iter_rules()}
        for name in FUNCTION_NAMES:
            assert f"{URL_PREFIX}/{name}" in rules

    def test_unknown_route(self, client):
        assert client.post(f"{URL_PREFIX}/start_deep_pipeline").status_code == 404
