"""
Structured error values for the quiz core

Every expected rejection is a QuizError subclass carrying a stable ``kind``,
a message and a ``detail`` dict the client can use to render an actionable
message. The API layer turns them into JSON bodies; nothing here knows
about HTTP beyond the suggested status code.
"""
from typing import Any, Dict, Optional


class QuizError(Exception):
    """Base class for expected, recoverable quiz conditions"""
    
    kind = "quiz_error"
    status_code = 400
    
    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "detail": self.detail
        }


class NotFound(QuizError):
    kind = "not_found"
    status_code = 404


class InvalidTransition(QuizError):
    kind = "invalid_transition"
    status_code = 409


class NotReady(QuizError):
    kind = "not_ready"
    status_code = 409


class NoPlayers(QuizError):
    kind = "no_players"
    status_code = 409


class AlreadyPublished(QuizError):
    kind = "already_published"
    status_code = 409


class AlreadyAnswered(QuizError):
    kind = "already_answered"
    status_code = 409


class QuizNotActive(QuizError):
    kind = "quiz_not_active"
    status_code = 409


class LimitExceeded(QuizError):
    kind = "limit_exceeded"
    status_code = 422


class ValidationError(QuizError):
    kind = "validation_error"
    status_code = 422


class Forbidden(QuizError):
    kind = "forbidden"
    status_code = 403


class StorageError(QuizError):
    """Unexpected storage failure; the caller decides whether to retry"""
    kind = "storage_error"
    status_code = 503


class UpstreamError(QuizError):
    """A third-party collaborator (question generation) failed"""
    kind = "upstream_error"
    status_code = 502
