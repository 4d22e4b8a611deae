"""Intake gate - decides what a chat turn is before any model call happens.

The state is never stored. It is recomputed on every turn from whether a
profile exists, how many turns came before, whether the text looks like an
onboarding answer and, if extraction ran, how confident it was.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from coach.services.onboarding_extractor import Confidence
from coach.services.patterns import gate_markers


class PipelineState(Enum):
    """Where a chat turn is routed."""
    NEEDS_ONBOARDING = "needs_onboarding"
    AWAITING_ONBOARDING_REPLY = "awaiting_onboarding_reply"
    NEEDS_CLARIFICATION = "needs_clarification"
    READY = "ready"


ONBOARDING_PROMPT = """Thanks for starting a chat! Before we begin, I'd love to learn a bit about you so I can personalize my responses.
Please reply with a short answer containing:
- Who you are (name or short summary)
- 2-4 goals you want to work on (fitness, learning, career, etc.)
- How you'd like to be motivated (e.g. encouraging, supportive, energizing, firm)

Example reply:
My name is Sam. Goals: Run a half marathon; Learn Rust; Improve sleep. Tone: encouraging

You can just write naturally - I'll take care of saving this in your profile."""

CLARIFICATION_PROMPT = """I caught some profile info, but I want to make sure I get it right. Could you re-phrase using this format?

My name is [your name]. Goals: [goal 1]; [goal 2]; [goal 3]. Tone: [encouraging/supportive/energizing/firm/etc].

Example: My name is Alex. Goals: Run a half-marathon; Learn Python; Improve sleep. Tone: supportive"""

ONBOARDING_ACKNOWLEDGEMENT = "Perfect! I saved your profile and preferences. Now, how can I help you today?"


@dataclass(frozen=True)
class GateCheck:
    """Which onboarding markers a message contains."""
    has_name_marker: bool
    has_goal_marker: bool
    has_tone_marker: bool

    @property
    def matched(self) -> bool:
        return self.has_name_marker or self.has_goal_marker or self.has_tone_marker


def gate_check(text: str) -> GateCheck:
    """Keyword test deciding whether a message is worth running extraction on."""
    has_name, has_goals, has_tone = gate_markers(text or "")
    return GateCheck(has_name_marker=has_name, has_goal_marker=has_goals, has_tone_marker=has_tone)


def derive_state(
    profile_exists: bool,
    prior_turns: int,
    gate_matched: bool = False,
    confidence: Optional[Confidence] = None,
) -> PipelineState:
    """
    Compute the pipeline state for a turn.

    Args:
        profile_exists: Whether the user already has a stored profile
        prior_turns: Number of turns stored before this one
        gate_matched: Result of the onboarding keyword test
        confidence: Extraction confidence, or None if extraction has not run

    Returns:
        The PipelineState the turn should be handled in
    """
    if not profile_exists and prior_turns == 0:
        return PipelineState.NEEDS_ONBOARDING

    if not gate_matched:
        return PipelineState.READY

    if confidence is None:
        return PipelineState.READY if profile_exists else PipelineState.AWAITING_ONBOARDING_REPLY

    if confidence.persistable or profile_exists:
        return PipelineState.READY

    return PipelineState.NEEDS_CLARIFICATION
