"""Shared test fixtures for hovercard tests."""

import asyncio

import pytest

from hovercard.core.models import PreviewRecord
from hovercard.core.resolver import MetadataResolver
from hovercard.messaging.protocol import ChannelDisconnectedError

FULL_PAGE = """
<html>
<head>
  <title>  Example Domain  </title>
  <meta property="og:title" content="OG Example">
  <meta name="description" content="An example page for tests.">
  <meta property="og:description" content="OG description">
  <meta property="og:image" content="/img/a.png">
  <meta name="twitter:image" content="https://cdn.example.com/twitter.png">
</head>
<body><p>Hello</p></body>
</html>
"""


class ProbeResolver(MetadataResolver):
    """Resolver whose network step is replaced by a scripted list of outcomes.

    Each call to the fetch step pops the next outcome: a string is returned
    as page HTML, an exception is raised.
    """

    def __init__(self, outcomes=None, delay: float = 0, **kwargs):
        super().__init__(**kwargs)
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.fetch_calls: list[str] = []

    async def _fetch_html(self, url: str) -> str:
        self.fetch_calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeConnection:
    """Records requests; replies are delivered by the test, in any order."""

    def __init__(self):
        self.alive = True
        self.sent: list[tuple[dict, object]] = []

    def is_alive(self) -> bool:
        return self.alive

    def send_message(self, message, callback) -> None:
        if not self.alive:
            raise ChannelDisconnectedError("connection to metadata service lost")
        self.sent.append((message, callback))

    def reply(self, index: int, response=None, error=None) -> None:
        _message, callback = self.sent[index]
        callback(response, error)


class FakeRenderer:
    """Keeps the last thing drawn instead of drawing it."""

    def __init__(self):
        self.visible = False
        self.state = None
        self.anchor = None
        self.render_count = 0

    def render(self, state, anchor) -> None:
        self.visible = True
        self.state = state
        self.anchor = anchor
        self.render_count += 1

    def hide(self) -> None:
        self.visible = False


@pytest.fixture
def full_page():
    return FULL_PAGE


@pytest.fixture
def example_record():
    return PreviewRecord(
        url="https://example.com/page",
        title="Example Domain",
        description="An example page for tests.",
        image="https://example.com/img/a.png",
        favicon="https://www.google.com/s2/favicons?domain=example.com",
    )


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def renderer():
    return FakeRenderer()
