"""Shared fixtures and fake aiohttp objects for the Makamesco tests."""

import json
import os
import sys
from pathlib import Path

import pytest
from multidict import CIMultiDict

# Add the parent directory to the path so the top-level packages import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config import AppConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"
UPSTREAM = "https://upstream.test"


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakeResponse:
    """Minimal stand-in for ``aiohttp.ClientResponse``."""
    
    def __init__(self, status: int = 200, body=b"", content_type: str = "text/html; charset=utf-8"):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.status = status
        self._body = body
        self.headers = CIMultiDict()
        if content_type:
            self.headers["Content-Type"] = content_type
    
    async def text(self):
        return self._body.decode("utf-8")
    
    async def read(self):
        return self._body
    
    async def json(self, content_type=None):
        if not self._body.strip():
            return None
        return json.loads(self._body.decode("utf-8"))
    
    async def __aenter__(self):
        return self
    
    async def __aexit__(self, exc_type, exc, tb):
        return False


class _RaisingContext:
    def __init__(self, error: BaseException):
        self.error = error
    
    async def __aenter__(self):
        raise self.error
    
    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Serves canned responses keyed by URL; records every request made."""
    
    def __init__(self, routes=None, default=None):
        self.routes = dict(routes or {})
        self.default = default
        self.calls = []
        self.closed = False
    
    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": str(url), **kwargs})
        outcome = self.routes.get(str(url), self.default)
        if outcome is None:
            outcome = FakeResponse(status=404, body="not found", content_type="text/plain")
        if isinstance(outcome, BaseException):
            return _RaisingContext(outcome)
        return outcome
    
    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)
    
    async def close(self):
        self.closed = True


@pytest.fixture
def ai_page():
    return load_fixture("ai.html")


@pytest.fixture
def app_config():
    return AppConfig(
        upstream_origin=UPSTREAM,
        sqlite_path=":memory:",
        categories=["ai", "download"],
        auto_scrape=False
    )
