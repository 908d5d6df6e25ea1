"""Shared fixtures for feed sync tests."""

import io
import zipfile
from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest

from checksum_sentinel.config import AppConfig, PathsConfig, reset_config
from checksum_sentinel.feeds.sources import ContentKind, FeedCategory, FeedSource

ZIP_TYPE = "application/zip"


def make_zip(members: List[Tuple[str, Union[str, bytes]]]) -> bytes:
    """Build a ZIP archive from (name, content) pairs, in order."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in members:
            zf.writestr(name, content)
    return buf.getvalue()


def make_corrupt_zip(name: str, content: Union[str, bytes]) -> bytes:
    """Build a deflated single-member archive whose compressed data is invalid."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, content)
    data = bytearray(buf.getvalue())
    # first byte after the local header: BFINAL=1, BTYPE=11 (reserved)
    data[30 + len(name.encode())] = 0xFF
    return bytes(data)


def text_response(body: str) -> httpx.Response:
    return httpx.Response(200, text=body, headers={"content-type": "text/plain; charset=utf-8"})


def zip_response(members: List[Tuple[str, Union[str, bytes]]]) -> httpx.Response:
    return httpx.Response(200, content=make_zip(members), headers={"content-type": ZIP_TYPE})


class FakeFeeds:
    """
    URL -> response table served through httpx.MockTransport.
    
    A value may be an httpx.Response, or an exception instance to raise.
    """

    def __init__(self, routes: Dict[str, object]):
        self.routes = routes
        self.requested: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        return route

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def client_factory(self) -> Callable[[], httpx.AsyncClient]:
        return self.client


def source(url: str, category: FeedCategory = FeedCategory.VOLATILE,
           kind: ContentKind = ContentKind.AUTO) -> FeedSource:
    return FeedSource(url=url, category=category, kind=kind)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Keep tests away from /etc/css and any cached configuration."""
    monkeypatch.setenv("CSS_CONFIG_FILE", str(tmp_path / "missing-config.yaml"))
    for name in ("CSS_BASELINE_HASHES", "CSS_VOLATILE_HASHES", "CSS_RULE_DIR",
                 "CSS_HTTP_TIMEOUT", "CSS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def cache_paths(tmp_path) -> PathsConfig:
    return PathsConfig(
        baseline_hashes=tmp_path / "hashes" / "persistent_hashes.txt",
        volatile_hashes=tmp_path / "hashes" / "hashes.txt",
        rule_dir=tmp_path / "yara_rules",
    )


@pytest.fixture
def make_config(cache_paths):
    def _make(sources: List[FeedSource]) -> AppConfig:
        return AppConfig(paths=cache_paths, sources=sources)
    return _make
