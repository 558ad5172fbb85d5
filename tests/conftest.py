import json

import pytest

from configs.config import Config


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = text if text is not None else json.dumps(payload if payload is not None else {})

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    """Routes GET requests by URL path; unknown paths answer 404."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.headers = {}
        self.calls = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        path = url.split("api.github.com", 1)[-1]
        self.calls.append((path, params))
        route = self.routes.get(path)
        if route is None:
            return FakeResponse(404, {"message": "Not Found"})
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(200, route)

    def close(self):
        self.closed = True


def commit(sha, message, login=None, name="Someone"):
    return {
        "sha": sha,
        "commit": {"message": message, "author": {"name": name}},
        "author": {"login": login} if login else None,
    }


def pull(number, title, login, labels=(), merged=True):
    return {
        "number": number,
        "title": title,
        "user": {"login": login},
        "labels": [{"name": l} for l in labels],
        "body": "",
        "merged_at": "2024-05-01T10:00:00Z" if merged else None,
    }


@pytest.fixture(autouse=True)
def _quiet_side_effects(monkeypatch):
    monkeypatch.setattr(Config, "METRICS_ENABLED", False)
    monkeypatch.setattr(Config, "REFINE_ENABLED", True)
    monkeypatch.setenv("LANGSMITH_TRACING", "false")


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def make_client():
    from utils.github_client import GithubClient

    def _make(routes=None, token="test-token"):
        session = FakeSession(routes)
        return GithubClient(token=token, base_url="https://api.github.com", timeout_s=5, session=session), session

    return _make
