"""Profile and conversation stores.

The pipeline only reads conversations and reads/upserts profiles. Real
persistence lives in the service that hosts the pipeline; the in-memory
stores here back development and tests.
"""
import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from coach.core.config import settings
from coach.core.logging import logger
from coach.services.onboarding_extractor import Confidence, ProfileFragment


class TurnRole(Enum):
    """Who wrote a chat turn."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatTurn:
    """One message in a conversation."""
    text: str
    role: TurnRole
    timestamp: datetime

    def to_message(self) -> Dict[str, str]:
        """Chat-completion message format."""
        return {"role": self.role.value, "content": self.text}


@dataclass(frozen=True)
class Profile:
    """A user's stored coaching profile."""
    user_id: str
    summary: Optional[str] = None
    goals: Dict[str, List[str]] = field(default_factory=dict)
    preferences: Dict[str, str] = field(default_factory=dict)
    extracted_at: Optional[datetime] = None
    extraction_confidence: Optional[Confidence] = None
    extraction_warnings: Tuple[str, ...] = ()
    last_sync: Optional[datetime] = None

    def to_context(self) -> str:
        """Render the profile block included in model prompts."""
        context = ""
        if self.summary:
            context += f"Summary: {self.summary}\n"
        if self.goals:
            context += f"Goals: {json.dumps(self.goals)}\n"
        if self.preferences:
            context += f"Preferences: {json.dumps(self.preferences)}\n"
        return context

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "summary": self.summary,
            "goals": self.goals,
            "preferences": self.preferences,
            "extractedAt": self.extracted_at.isoformat() if self.extracted_at else None,
            "extractionConfidence": self.extraction_confidence.value if self.extraction_confidence else None,
            "extractionWarnings": list(self.extraction_warnings),
            "lastSync": self.last_sync.isoformat() if self.last_sync else None,
        }


class ProfileStore(ABC):
    """Read and upsert user profiles."""

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Return the stored profile, or None."""

    @abstractmethod
    def upsert_profile(self, user_id: str, fragment: ProfileFragment) -> Profile:
        """Merge the fragment into the user's profile, creating it if needed."""


class ConversationStore(ABC):
    """Read recent conversation turns."""

    @abstractmethod
    def get_recent_turns(self, user_id: str, limit: int) -> List[ChatTurn]:
        """Return up to ``limit`` most recent turns, oldest first."""


class InMemoryProfileStore(ProfileStore):
    """Lock-guarded dict of profiles."""

    def __init__(self):
        self._profiles: Dict[str, Profile] = {}
        self._lock = threading.Lock()

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with self._lock:
            return self._profiles.get(user_id)

    def upsert_profile(self, user_id: str, fragment: ProfileFragment) -> Profile:
        """Only fields present in the fragment overwrite stored values."""
        now = datetime.now(settings.user_timezone)
        with self._lock:
            profile = self._profiles.get(user_id) or Profile(user_id=user_id)
            changes: Dict[str, Any] = {
                "extracted_at": fragment.extracted_at,
                "extraction_confidence": fragment.extraction_confidence,
                "extraction_warnings": fragment.extraction_warnings,
                "last_sync": now,
            }
            if fragment.summary is not None:
                changes["summary"] = fragment.summary
            if fragment.goals:
                changes["goals"] = dict(fragment.goals)
            if fragment.preferences:
                changes["preferences"] = dict(fragment.preferences)
            profile = replace(profile, **changes)
            self._profiles[user_id] = profile
        logger.info(f"Profile upserted for user {user_id} [{fragment.extraction_confidence.value}]")
        return profile


class InMemoryConversationStore(ConversationStore):
    """Lock-guarded per-user turn lists."""

    def __init__(self):
        self._turns: Dict[str, List[ChatTurn]] = {}
        self._lock = threading.Lock()

    def append_turn(self, user_id: str, turn: ChatTurn) -> None:
        with self._lock:
            self._turns.setdefault(user_id, []).append(turn)

    def get_recent_turns(self, user_id: str, limit: int) -> List[ChatTurn]:
        if limit <= 0:
            return []
        with self._lock:
            return list(self._turns.get(user_id, [])[-limit:])
