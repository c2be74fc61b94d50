"""Two-party spoken conversation translation."""

from .controller import SessionController
from .errors import ErrorKind, OrchestratorError, SessionStateError, StartFailure, StopFailure
from .handlers import ConversationHandlers
from .languages import AUTO_DETECT, LanguageCode
from .models import SessionState, Speaker

__all__ = [
    "AUTO_DETECT",
    "ConversationHandlers",
    "ErrorKind",
    "LanguageCode",
    "OrchestratorError",
    "SessionController",
    "SessionState",
    "SessionStateError",
    "Speaker",
    "StartFailure",
    "StopFailure",
]
