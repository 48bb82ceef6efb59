"""Exception hierarchy for sceneviz."""


class SceneVizError(Exception):
    """Base exception for all sceneviz errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class SceneValidationError(SceneVizError):
    """Scene document is missing its duration, fps or layers."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message, details={"errors": errors or []})
        self.errors = errors or []


class InvalidSubmissionError(SceneVizError):
    """Question submission without a user id or question text."""


class QuestionNotFoundError(SceneVizError):
    """Unknown question ID."""

    def __init__(self, question_id: str):
        super().__init__(
            f"Question '{question_id}' not found", details={"question_id": question_id}
        )
        self.question_id = question_id


class AnswerNotFoundError(SceneVizError):
    """Unknown answer ID."""

    def __init__(self, answer_id: str):
        super().__init__(f"Answer '{answer_id}' not found", details={"answer_id": answer_id})
        self.answer_id = answer_id


# ── Generation Errors ─────────────────────────────────────────────────

class GenerationError(SceneVizError):
    """The generator could not produce a usable answer."""


class GenerationTimeoutError(GenerationError):
    """Generation exceeded its time budget."""

    def __init__(self, message: str, timeout_seconds: float):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
        self.details["timeout_seconds"] = timeout_seconds


class RepairError(GenerationError):
    """Model output could not be coerced into JSON."""

    def __init__(self, message: str, raw: str | None = None):
        details = {}
        if raw:
            details["raw"] = raw[:2000]  # Truncate long model output
        super().__init__(message, details)
        self.raw = raw


# ── LLM Errors ────────────────────────────────────────────────────────

class LLMError(SceneVizError):
    """Base class for LLM-related errors."""


class LLMResponseError(LLMError):
    """LLM returned invalid or empty response."""


class LLMBlockedError(LLMResponseError):
    """LLM refused to answer (safety, recitation or prompt block)."""

    def __init__(self, message: str, reason: str):
        super().__init__(message, details={"reason": reason})
        self.reason = reason


class LLMMaxRetriesError(LLMError):
    """LLM call failed after maximum retries."""

    def __init__(self, message: str, attempts: int, last_error: str | None = None):
        super().__init__(
            message,
            details={"attempts": attempts, "last_error": last_error},
        )
        self.attempts = attempts
        self.last_error = last_error


# ── Render Errors ─────────────────────────────────────────────────────

class RenderError(SceneVizError):
    """Frame could not be drawn or exported."""


class UnsupportedFormatError(RenderError):
    """Requested export format is not available."""

    def __init__(self, fmt: str, supported: list[str] | None = None):
        super().__init__(
            f"Unsupported output format '{fmt}'",
            details={"format": fmt, "supported": supported or []},
        )
        self.fmt = fmt
