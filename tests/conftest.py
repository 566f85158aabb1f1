import json

import httpx
import pytest
from fastapi.testclient import TestClient

from homelab_dash.config import Settings, get_settings
from homelab_dash.deps import get_http_client, get_pve_client, get_token_caches
from homelab_dash.main import app
from homelab_dash.utils.tokens import TokenCaches


class FakeUpstream:
    """MockTransport handler: canned responses keyed by (method, url without query)."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, url, response=None, status_code=200, **kwargs):
        if response is None:
            response = lambda request: httpx.Response(status_code, **kwargs)  # noqa: E731
        self.routes[(method.upper(), url)] = response

    def calls(self, method, url):
        return [r for r in self.requests if r.method == method.upper() and _base_url(r) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, _base_url(request)))
        if handler is None:
            return httpx.Response(404, json={"error": "no route"})
        return handler(request)


def _base_url(request: httpx.Request) -> str:
    url = request.url
    return f"{url.scheme}://{url.netloc.decode()}{url.path}"


def request_json(request: httpx.Request):
    return json.loads(request.content)


@pytest.fixture
def settings():
    return Settings(timezone="Australia/Sydney")


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def tokens():
    return TokenCaches()


@pytest.fixture
def client(settings, upstream, tokens):
    http = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_http_client] = lambda: http
    app.dependency_overrides[get_pve_client] = lambda: http
    app.dependency_overrides[get_token_caches] = lambda: tokens
    yield TestClient(app)
    app.dependency_overrides.clear()
