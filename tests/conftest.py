"""
Coach Pipeline Test Configuration

Shared fixtures and configuration for pytest.
"""

import sys
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

# Add src to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from coach.services.llm import LanguageModel
from coach.services.model_selector import ModelTier
from coach.services.response_cache import ResponseCache
from coach.services.stores import (
    ChatTurn,
    InMemoryConversationStore,
    InMemoryProfileStore,
    TurnRole,
)
from coach.services.chat.orchestrator import ChatOrchestrator


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests of a single component"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# Fakes
# =============================================================================

class FakeLanguageModel(LanguageModel):
    """Scripted language model that records every call.

    Replies are consumed in order; the last one repeats once the script
    runs out. Setting ``error`` makes every call raise it.
    """

    def __init__(
        self,
        replies: Optional[List[str]] = None,
        json_replies: Optional[List[str]] = None,
        error: Optional[Exception] = None,
    ):
        self.replies = list(replies or ["Let's take it one step at a time."])
        self.json_replies = list(json_replies or ['{"type": null}'])
        self.error = error
        self.generate_calls: List[Dict] = []
        self.json_calls: List[str] = []

    @staticmethod
    def _next(script: List[str]) -> str:
        return script.pop(0) if len(script) > 1 else script[0]

    def generate(self, system_prompt, history, user_text, max_tokens, tier=ModelTier.MAIN):
        self.generate_calls.append({
            "system_prompt": system_prompt,
            "history": history,
            "user_text": user_text,
            "max_tokens": max_tokens,
            "tier": tier,
        })
        if self.error:
            raise self.error
        return self._next(self.replies)

    def generate_json(self, prompt):
        self.json_calls.append(prompt)
        if self.error:
            raise self.error
        return self._next(self.json_replies)


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


# =============================================================================
# Time Fixtures
# =============================================================================

@pytest.fixture
def fixed_now() -> datetime:
    """A known Wednesday morning."""
    return datetime(2026, 10, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def fake_llm() -> FakeLanguageModel:
    return FakeLanguageModel()


@pytest.fixture
def make_llm():
    """Factory for scripted fakes: make_llm(replies=..., json_replies=..., error=...)."""
    return FakeLanguageModel


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def conversation_store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def cache(fake_clock) -> ResponseCache:
    return ResponseCache(ttl_seconds=3600, clock=fake_clock)


@pytest.fixture
def make_turn(fixed_now):
    """Build ChatTurns a minute apart, oldest first."""
    counter = {"n": 0}

    def _make(text: str, role: TurnRole = TurnRole.USER) -> ChatTurn:
        counter["n"] += 1
        return ChatTurn(text=text, role=role, timestamp=fixed_now + timedelta(minutes=counter["n"]))

    return _make


@pytest.fixture
def orchestrator(profile_store, conversation_store, fake_llm, cache, fixed_now) -> ChatOrchestrator:
    """Orchestrator wired to fakes and in-memory stores."""
    return ChatOrchestrator(
        profile_store,
        conversation_store,
        llm=fake_llm,
        cache=cache,
        clock=lambda: fixed_now,
    )


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def alex_onboarding() -> str:
    return "My name is Alex. Goals: Get fit, learn Python, improve focus. Tone: supportive and energizing"
