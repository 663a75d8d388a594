"""
Shared fixtures: 配置、内存存储
"""

from datetime import datetime, timezone

import pytest

from stockdesk.core.config import Settings
from stockdesk.core.storage import MemoryStore
from stockdesk.schemas.dashboard import Credentials

FIXED_NOW = datetime(2026, 10, 19, 18, 30, tzinfo=timezone.utc)


@pytest.fixture
def config() -> Settings:
    return Settings(
        _env_file=None,
        PERPLEXITY_API_KEY=None,
        GEMINI_API_KEY=None,
        STORAGE_BACKEND="memory",
        DEFAULT_LANGUAGE="ZH",
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(chat_api_key="pplx-test", vision_api_key="AIza-test")


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
