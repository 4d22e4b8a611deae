"""Model tier selection for cost control."""
from enum import Enum

from coach.core.config import settings
from coach.services.patterns import CHEAP_TASK_RE, CHEAP_WHAT_MAX_LENGTH, WHAT_RE


class ModelTier(Enum):
    """Cost tier of the language model used for a reply."""
    CHEAP = "cheap"
    MAIN = "main"

    @property
    def model_name(self) -> str:
        if self is ModelTier.CHEAP:
            return settings.llm.cheap_model
        return settings.llm.main_model

    @property
    def max_tokens(self) -> int:
        if self is ModelTier.CHEAP:
            return settings.llm.cheap_max_tokens
        return settings.llm.main_max_tokens


def select_model_tier(message: str) -> ModelTier:
    """
    Pick a model tier from the message text alone.

    Short "what" questions and list/define/summarize requests go to the cheap
    model; everything else goes to the main model. No I/O, no state.
    """
    if WHAT_RE.search(message) and len(message) < CHEAP_WHAT_MAX_LENGTH:
        return ModelTier.CHEAP
    if CHEAP_TASK_RE.search(message):
        return ModelTier.CHEAP
    return ModelTier.MAIN
