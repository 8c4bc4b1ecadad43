from __future__ import annotations

import pytest

from flowerbot.services.content_filter import ContentFilter
from flowerbot.wizard.machine import FlowerWizard
from flowerbot.wizard.sessions import SessionTable


@pytest.fixture(scope="session")
def content_filter() -> ContentFilter:
    return ContentFilter(extra_words=["blorpo"])


@pytest.fixture
def sessions() -> SessionTable:
    return SessionTable()


@pytest.fixture
def wizard(sessions: SessionTable, content_filter: ContentFilter) -> FlowerWizard:
    return FlowerWizard(sessions, content_filter)
