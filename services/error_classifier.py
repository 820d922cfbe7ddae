"""
Error Classifier for database operations

Decides whether a failed operation is safe to retry. The decision is driven
by a policy table, checked in this order:
1. backend / driver error codes known to be transient
2. exception types raised by the network layer
3. message fragments (lower-cased substring match)

Anything that matches nothing is terminal: validation errors, permission
denied, not found, malformed input.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Optional, Tuple, Type

from pymongo.errors import ConnectionFailure, ExecutionTimeout, WTimeoutError

logger = logging.getLogger(__name__)


# Codes that signal a transient failure
RETRYABLE_CODES = {
    "PGRST301": "connection timeout",
    "503": "service unavailable",
    "504": "gateway timeout",
    "408": "request timeout",
    "429": "too many requests",
    # MongoDB server codes
    "6": "HostUnreachable",
    "7": "HostNotFound",
    "50": "MaxTimeMSExpired",
    "89": "NetworkTimeout",
    "91": "ShutdownInProgress",
    "189": "PrimarySteppedDown",
    "9001": "SocketException",
    "10107": "NotWritablePrimary",
    "11600": "InterruptedAtShutdown",
}

# Exception types raised when the server could not be reached in time.
# ConnectionFailure covers AutoReconnect, NetworkTimeout and
# ServerSelectionTimeoutError.
RETRYABLE_EXCEPTION_TYPES: Tuple[Type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    ConnectionFailure,
    ExecutionTimeout,
    WTimeoutError,
)

RETRYABLE_MESSAGE_PATTERNS = (
    "network error",
    "timeout",
    "timed out",
    "connection refused",
    "connection reset",
    "socket hang up",
    "econnrefused",
    "etimedout",
    "failed to fetch",
)


def error_code(error: Any) -> Optional[str]:
    """Code of an exception or structured error, as a string"""
    if isinstance(error, dict):
        code = error.get("code")
    else:
        code = getattr(error, "code", None)
    return str(code) if code is not None else None


def error_message(error: Any) -> str:
    if error is None:
        return ""
    if isinstance(error, dict):
        return str(error.get("message") or "")
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


@dataclass
class ErrorClassifier:
    """Retryable / terminal decision over a replaceable policy table"""
    codes: FrozenSet[str] = field(default_factory=lambda: frozenset(RETRYABLE_CODES))
    exception_types: Tuple[Type[BaseException], ...] = RETRYABLE_EXCEPTION_TYPES
    message_patterns: Tuple[str, ...] = RETRYABLE_MESSAGE_PATTERNS

    def is_retryable(self, error: Any, online: bool = True) -> bool:
        if error is None:
            return False

        # Anything failing while offline is worth another try once back online
        if not online:
            return True

        code = error_code(error)
        if code is not None and code in self.codes:
            return True

        if isinstance(error, self.exception_types):
            return True

        message = error_message(error).lower()
        return any(pattern in message for pattern in self.message_patterns)


default_classifier = ErrorClassifier()


def is_retryable(error: Any, online: bool = True) -> bool:
    return default_classifier.is_retryable(error, online)
