"""
Error taxonomy for ANONYFLOW.

Every failure surfaced by the technique engine or the session orchestrator
maps to one ErrorKind, so operators can tell configuration mistakes
(unknown technique, invalid parameters) apart from data-shape problems
(a technique raising during execution) and from I/O failures.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Kinds of failures reported by ANONYFLOW."""

    TECHNIQUE_NOT_FOUND = "technique_not_found"
    INVALID_PARAMETERS = "invalid_parameters"
    TRANSFORM_FAILURE = "transform_failure"
    SOURCE_UNAVAILABLE = "source_unavailable"
    SINK_FAILURE = "sink_failure"
    SESSION_NOT_FOUND = "session_not_found"
    INVALID_SESSION_STATE = "invalid_session_state"


class AnonyflowError(Exception):
    """Base class for all ANONYFLOW errors.

    Attributes:
        kind: The ErrorKind for this failure.
        message: Human readable description.
    """

    kind: ErrorKind = ErrorKind.TRANSFORM_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Serialize the error for logs and results."""
        return {"kind": self.kind.value, "message": self.message}


class TechniqueNotFound(AnonyflowError):
    """Raised when a technique id is not registered."""

    kind = ErrorKind.TECHNIQUE_NOT_FOUND

    def __init__(self, technique_id: str) -> None:
        super().__init__(f"Technique not found: {technique_id}")
        self.technique_id = technique_id


class InvalidParameters(AnonyflowError):
    """Raised when a technique's validator rejects the supplied parameters."""

    kind = ErrorKind.INVALID_PARAMETERS

    def __init__(self, technique_id: str, detail: Optional[str] = None) -> None:
        message = f"Invalid parameters for technique {technique_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.technique_id = technique_id


class TransformFailure(AnonyflowError):
    """Raised when a technique fails while transforming a value."""

    kind = ErrorKind.TRANSFORM_FAILURE


class SourceUnavailable(AnonyflowError):
    """Raised when an input source cannot be validated or fetched from."""

    kind = ErrorKind.SOURCE_UNAVAILABLE


class SinkFailure(AnonyflowError):
    """Raised when an output target rejects a batch."""

    kind = ErrorKind.SINK_FAILURE


class SessionNotFound(AnonyflowError):
    """Raised when a session id is unknown to the session manager."""

    kind = ErrorKind.SESSION_NOT_FOUND

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class InvalidSessionState(AnonyflowError):
    """Raised when a lifecycle call is not allowed in the session's status."""

    kind = ErrorKind.INVALID_SESSION_STATE
