# errors.py
"""Typed failures of the code lifecycle engine.

Every error carries the campaign id, the code reference (id or value) and the
attempted transition when they are known, plus a short machine-readable
``code`` the HTTP layer passes through as ``detail``.
"""


class CodeEngineError(Exception):
    code = "code_engine_error"

    def __init__(
        self,
        message: str,
        *,
        campaign_id: str | None = None,
        code_ref: str | None = None,
        transition: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.campaign_id = campaign_id
        self.code_ref = code_ref
        self.transition = transition

    def context(self) -> dict:
        return {
            "error": self.code,
            "campaign_id": self.campaign_id,
            "code_ref": self.code_ref,
            "transition": self.transition,
        }


class NotFoundError(CodeEngineError):
    code = "not_found"


class ConflictError(CodeEngineError):
    """The stored aggregate no longer allows what the caller asked for."""

    code = "conflict"


class InvalidStateError(ConflictError):
    code = "invalid_state"

    def __init__(self, message: str, *, current_status: str | None = None, **context):
        super().__init__(message, **context)
        self.current_status = current_status

    def context(self) -> dict:
        data = super().context()
        data["current_status"] = self.current_status
        return data


class CapacityExceededError(CodeEngineError):
    code = "capacity_exceeded"

    def __init__(self, message: str, *, requested: int, remaining: int, **context):
        super().__init__(message, **context)
        self.requested = requested
        self.remaining = remaining


class InvalidCountError(CodeEngineError, ValueError):
    code = "invalid_count"


class GenerationExhaustedError(CodeEngineError):
    code = "generation_exhausted"


class InactiveCampaignError(CodeEngineError):
    code = "inactive_campaign"

    def __init__(self, message: str, *, active: bool, **context):
        super().__init__(message, **context)
        # False here means "switched off"; True means "outside its dates"
        self.active = active


class ContentionError(CodeEngineError):
    code = "contention"
