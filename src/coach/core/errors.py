"""Error taxonomy for the message-understanding pipeline."""


class CoachError(Exception):
    """Base exception for pipeline errors."""
    pass


class ValidationError(CoachError):
    """Input text is empty or too short to process."""
    pass


class AmbiguousInputError(CoachError):
    """Extraction could not decide what the user meant.

    Never raised: ambiguity is carried as a LOW confidence result and
    answered with the clarification prompt.
    """
    pass


class ModelUnavailableError(CoachError):
    """The language model call failed. Fatal for the current turn."""
    pass


class ModelTimeoutError(ModelUnavailableError):
    """The language model did not answer within the configured timeout."""
    pass


class MalformedModelOutputError(CoachError):
    """The language model returned something that is not the JSON we asked for."""
    pass
