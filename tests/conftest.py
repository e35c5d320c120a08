"""Shared fakes: a scripted model gateway and an in-memory page loader."""
import pytest

from cypressgen.gateway import Conversation


class FakeGateway:
    """Replays canned replies in order and records every transcript it receives."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    def chat(self, messages):
        if isinstance(messages, Conversation):
            messages = messages.messages
        self.calls.append(list(messages))
        if not self.replies:
            raise AssertionError("FakeGateway ran out of scripted replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def prompt(self, index):
        """Content of the last user message of call ``index``."""
        return self.calls[index][-1]["content"]


class FakePageLoader:
    def __init__(self, node=None, full_html="", filtered_error=None, full_error=None):
        self.node = node
        self.full_html = full_html
        self.filtered_error = filtered_error
        self.full_error = full_error
        self.requests = []

    def load_filtered_dom(self, url):
        self.requests.append(("filtered", url))
        if self.filtered_error:
            raise self.filtered_error
        return self.node

    def load_full_html(self, url):
        self.requests.append(("full", url))
        if self.full_error:
            raise self.full_error
        return self.full_html


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("CYPRESSGEN_PROVIDER", "CYPRESSGEN_MODEL", "CYPRESSGEN_BASE_URL", "CYPRESSGEN_API_BASE"):
        monkeypatch.delenv(name, raising=False)
