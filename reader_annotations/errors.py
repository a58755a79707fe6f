"""
Annotation Error Types

Exception hierarchy shared by the anchoring engine. Anchor and auth failures are
handled silently by callers; validation and network failures are surfaced to the
reader as transient messages.
"""


class AnnotationError(Exception):
    """Base class for all annotation engine errors"""


class AnchorNotFound(AnnotationError):
    """The selection could not be matched inside its container"""


class ValidationError(AnnotationError):
    """Input rejected before any network call (empty text, inverted offsets, ...)"""


class AuthError(AnnotationError):
    """No usable credential; annotation features are disabled"""


class NetworkError(AnnotationError):
    """A Content API call failed"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(NetworkError):
    """The Content API reported that the record does not exist"""


class InvalidTransition(AnnotationError):
    """An interaction action was requested from a phase that does not allow it"""

    def __init__(self, action: str, phase: str):
        super().__init__(f"Cannot {action} while {phase}")
        self.action = action
        self.phase = phase
