"""Chat Orchestrator - runs one chat turn through the pipeline.

This is the main entry point for the coaching chat. It:
1. Derives the pipeline state from the stored profile and turn count
2. Runs the onboarding gate and extractor, persisting confident profiles
3. Answers normal chat from the response cache or the language model
4. Produces suggestions from recent turns on request
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from coach.core.config import settings
from coach.core.errors import ModelUnavailableError, ValidationError
from coach.core.logging import logger
from coach.services.intake_gate import (
    CLARIFICATION_PROMPT,
    ONBOARDING_ACKNOWLEDGEMENT,
    ONBOARDING_PROMPT,
    PipelineState,
    derive_state,
    gate_check,
)
from coach.services.llm import LanguageModel, get_llm_service
from coach.services.model_selector import ModelTier, select_model_tier
from coach.services.onboarding_extractor import (
    OnboardingExtractor,
    build_profile_fragment,
    onboarding_extractor,
)
from coach.services.response_cache import ResponseCache, response_cache
from coach.services.stores import (
    ChatTurn,
    ConversationStore,
    InMemoryConversationStore,
    InMemoryProfileStore,
    Profile,
    ProfileStore,
)
from coach.services.suggestion_classifier import Suggestion, SuggestionClassifier


GENERIC_FAILURE_RESPONSE = "Sorry, I couldn't process your message right now. Please try again in a moment."

SYSTEM_PROMPT = "You are a helpful personal AI assistant for a life coaching application. "


@dataclass
class TurnResult:
    """What a chat turn produced."""
    response_text: str
    profile_updated: bool
    state: PipelineState
    cached: bool = False
    model_tier: Optional[ModelTier] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "responseText": self.response_text,
            "profileUpdated": self.profile_updated,
            "state": self.state.value,
            "cached": self.cached,
            "modelTier": self.model_tier.value if self.model_tier else None,
        }


class ChatOrchestrator:
    """Orchestrates a turn: intake gate -> extraction -> cache -> model.

    Stores are injected. The language model is created lazily so building
    an orchestrator never opens a client.

    The orchestrator only reads the conversation. Callers record both sides
    of each turn through ``conversation_store.append_turn``; until a user has
    any recorded turn, every message gets the onboarding prompt.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        conversation_store: ConversationStore,
        llm: Optional[LanguageModel] = None,
        cache: Optional[ResponseCache] = None,
        extractor: Optional[OnboardingExtractor] = None,
        classifier: Optional[SuggestionClassifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.profile_store = profile_store
        self.conversation_store = conversation_store
        self._llm = llm
        self.cache = cache if cache is not None else response_cache
        self.extractor = extractor or onboarding_extractor
        self._classifier = classifier
        self._clock = clock or (lambda: datetime.now(settings.user_timezone))

    @property
    def llm(self) -> LanguageModel:
        """Lazy load LLM service."""
        if self._llm is None:
            self._llm = get_llm_service()
        return self._llm

    @property
    def classifier(self) -> SuggestionClassifier:
        if self._classifier is None:
            self._classifier = SuggestionClassifier(self.llm)
        return self._classifier

    def handle_turn(self, user_id: str, text: str) -> TurnResult:
        """
        Process one user message.

        Args:
            user_id: Owner of the conversation
            text: The user's message (not yet stored in the conversation)

        Returns:
            TurnResult with the reply text and whether the profile changed

        Raises:
            ValidationError: blank text from a user who already has a profile
            ModelUnavailableError: the language model call failed
        """
        profile = self.profile_store.get_profile(user_id)

        if not text or not text.strip():
            if profile is None:
                return TurnResult(ONBOARDING_PROMPT, False, PipelineState.NEEDS_ONBOARDING)
            raise ValidationError("Message text is empty")

        history = self.conversation_store.get_recent_turns(user_id, settings.history_limit)
        state = derive_state(profile is not None, len(history))
        if state is PipelineState.NEEDS_ONBOARDING:
            logger.info(f"[Orchestrator] New user {user_id}, sending onboarding prompt")
            return TurnResult(ONBOARDING_PROMPT, False, state)

        gate = gate_check(text)
        if gate.matched:
            result = self.extractor.extract(text)
            state = derive_state(profile is not None, len(history), True, result.confidence)
            logger.info(
                f"[Orchestrator] Extraction for {user_id}: {result.confidence.value}"
                f"{' (' + '; '.join(result.warnings) + ')' if result.warnings else ''}"
            )

            if result.confidence.persistable:
                fragment = build_profile_fragment(result, self._clock())
                self.profile_store.upsert_profile(user_id, fragment)
                return TurnResult(ONBOARDING_ACKNOWLEDGEMENT, True, state)

            if state is PipelineState.NEEDS_CLARIFICATION:
                return TurnResult(CLARIFICATION_PROMPT, False, state)

        return self._respond(user_id, text, profile, history)

    def _respond(
        self,
        user_id: str,
        text: str,
        profile: Optional[Profile],
        history: List[ChatTurn],
    ) -> TurnResult:
        cached = self.cache.get(user_id, text)
        if cached is not None:
            return TurnResult(cached, False, PipelineState.READY, cached=True)

        tier = select_model_tier(text)
        logger.info(f"[Orchestrator] Using {tier.value} model for {user_id}")
        reply = self.llm.generate(
            self._system_prompt(profile),
            [turn.to_message() for turn in history],
            text,
            tier.max_tokens,
            tier,
        )
        self.cache.set(user_id, text, reply)
        return TurnResult(reply, False, PipelineState.READY, model_tier=tier)

    def _system_prompt(self, profile: Optional[Profile]) -> str:
        prompt = SYSTEM_PROMPT
        context = profile.to_context() if profile else ""
        if context:
            prompt += f"\n\nUser Context:\n{context}"
        return prompt

    def classify_suggestion(
        self,
        user_id: str,
        recent_turns: Optional[Sequence[ChatTurn]] = None,
    ) -> Optional[Suggestion]:
        """
        Suggest a goal or event from the latest turns.

        When no turns are given the last few are read from the conversation
        store. Returns None when there is nothing to suggest.
        """
        if recent_turns is None:
            recent_turns = self.conversation_store.get_recent_turns(
                user_id, settings.conversation.suggestion_turns
            )
        profile = self.profile_store.get_profile(user_id)
        return self.classifier.classify(recent_turns, profile, self._clock())

    def chat(self, user_id: str, text: str) -> Dict[str, Any]:
        """handle_turn for callers that need a response even when the model is down."""
        try:
            return self.handle_turn(user_id, text).to_dict()
        except ModelUnavailableError as e:
            logger.error(f"[Orchestrator] Model unavailable for {user_id}: {e}", exc_info=True)
            return {
                "responseText": GENERIC_FAILURE_RESPONSE,
                "profileUpdated": False,
                "error": True,
            }


# Global orchestrator backed by in-memory stores.
# Record turns through chat_orchestrator.conversation_store.
chat_orchestrator = ChatOrchestrator(InMemoryProfileStore(), InMemoryConversationStore())
