"""Shared fixtures: page HTML and in-memory Redis doubles.

``fakeredis.FakeAsyncRedis`` stands in for the shared key-value store.  A
client bound to a disconnected ``FakeServer`` raises
``redis.exceptions.ConnectionError`` on every command, which is how the
"store unreachable" paths are exercised.
"""

from __future__ import annotations

import pytest
from fakeredis import FakeAsyncRedis, FakeServer


ARTICLE_PARAGRAPH = (
    "Solid-state batteries replace the liquid electrolyte of a lithium-ion "
    "cell with a ceramic or polymer layer. Engineers expect the change to "
    "raise energy density, cut fire risk, and shorten charging times, but "
    "manufacturing defects in the thin separator still limit yields at scale "
    "for every major producer today."
)

ARTICLE_HTML = f"""\
<!DOCTYPE html>
<html>
<head><title>Battery breakthrough</title></head>
<body>
  <header><a href="https://example.com/">Home</a></header>
  <nav><a href="https://example.com/world">World</a></nav>
  <article>
    <h1>Battery breakthrough</h1>
    <p>{ARTICLE_PARAGRAPH}</p>
    <p>Read the <a href="https://research.example.org/paper">original paper</a>.</p>
    <p><a href="https://example.com/subscribe-offer">Subscribe</a> for more.</p>
  </article>
  <footer>Copyright</footer>
</body>
</html>
"""


@pytest.fixture()
def article_html() -> str:
    return ARTICLE_HTML


@pytest.fixture()
def article_paragraph() -> str:
    return ARTICLE_PARAGRAPH


@pytest.fixture()
def fake_redis() -> FakeAsyncRedis:
    return FakeAsyncRedis(server=FakeServer())


@pytest.fixture()
def down_redis() -> FakeAsyncRedis:
    server = FakeServer()
    server.connected = False
    return FakeAsyncRedis(server=server)
