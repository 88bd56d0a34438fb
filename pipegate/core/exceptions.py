"""
PipeGate Exception Hierarchy

All exceptions inherit from PipeGateError for easy catching.
"""


class PipeGateError(Exception):
    """Base exception for all PipeGate errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(PipeGateError):
    """Raised when gate configuration cannot be loaded or is invalid"""
    pass


class SerializationError(PipeGateError):
    """Raised when a pipeline cannot be rendered to a decision request"""
    pass


class PipelineLookupError(PipeGateError):
    """Raised when the stored version of a pipeline cannot be found"""
    pass


class DecisionTransportError(PipeGateError):
    """Raised when the policy service cannot be reached or answers with no body"""
    pass


class PipelineRejectedError(PipeGateError):
    """
    Raised by ValidationGate.enforce() when a save must be blocked.

    `reason` is the exact human-readable rejection text; `kind` is the
    RejectionKind that produced it and is also kept in `details`.

    str() is the bare reason, without the details suffix the other errors
    carry: this message is shown to the user whose save was blocked.
    """

    def __init__(self, reason: str, kind=None):
        details = {"kind": kind.value} if kind is not None else {}
        super().__init__(reason, details=details)
        self.reason = reason
        self.kind = kind

    def __str__(self):
        return self.reason
