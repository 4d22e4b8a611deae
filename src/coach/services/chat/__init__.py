"""Chat service package.

The ChatOrchestrator runs each turn through:
1. The intake gate (onboarding prompt, extraction, clarification)
2. The response cache and model tier selection
3. The language model

Suggestions are produced separately through classify_suggestion.

The orchestrator never writes turns: callers append user and assistant
turns to chat_service.conversation_store after each reply.
"""
from coach.services.chat.orchestrator import (
    GENERIC_FAILURE_RESPONSE,
    ChatOrchestrator,
    TurnResult,
    chat_orchestrator,
)

# Singleton instance - use this for all chat operations
chat_service = chat_orchestrator

__all__ = [
    'ChatOrchestrator',
    'TurnResult',
    'GENERIC_FAILURE_RESPONSE',
    'chat_orchestrator',
    'chat_service',
]
