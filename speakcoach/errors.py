"""Domain exceptions shared across the lesson engine and its collaborators.

Leaf module: stdlib only. The API layer maps these to ApiResponse
envelopes in main.py; the engine never imports FastAPI.
"""


class SpeakcoachError(Exception):
    """Base class for every error raised deliberately by speakcoach."""


class ScriptLoadError(SpeakcoachError):
    """The lesson script is missing, unreadable, or fails validation.

    Fatal at startup — the service must not serve traffic without a
    valid script.

    Attributes:
        path: The script path that was being loaded (as string).
        error_type: One of ``"missing_file"``, ``"unreadable_file"``,
            ``"invalid_encoding"``, ``"invalid_json"``, ``"validation_error"``.
        message: Human-readable error description.
    """

    def __init__(self, path: str, error_type: str, message: str) -> None:
        self.path = path
        self.error_type = error_type
        self.message = message
        super().__init__(message)


class CollaboratorError(SpeakcoachError):
    """The language-model collaborator failed for one chat turn.

    Raised before the phase advances, so session state is unchanged.
    """


class QuotaStoreError(SpeakcoachError):
    """The quota storage backend could not complete a read or write."""
