"""
User-facing messages for failed database operations.

Backend error text is matched against known fragments; the first match wins.
"""

import logging
from typing import Any, Tuple

from models.result import ErrorKind
from services.error_classifier import error_message

logger = logging.getLogger(__name__)

# (fragment, message, kind) - order matters
ERROR_MESSAGES = [
    ("dates overlap",
     "This flight overlaps with another flight for the same aircraft.",
     ErrorKind.CONFLICT),
    ("flights_dates_check",
     "End date cannot be before start date.",
     ErrorKind.INVALID),
    ("flights_airports_check",
     "Start and end airports must be different.",
     ErrorKind.INVALID),
    ("flights_status_check",
     "Flight status must be either active or cancelled.",
     ErrorKind.INVALID),
    ("not-null constraint",
     "A required field is missing.",
     ErrorKind.INVALID),
    ("_not_blank",
     "A required field cannot be empty.",
     ErrorKind.INVALID),
    ("company_tail_unique",
     "This tail number is already registered for the company.",
     ErrorKind.CONFLICT),
    ("duplicate key",
     "A record with the same values already exists.",
     ErrorKind.CONFLICT),
    ("not found",
     "The requested record was not found.",
     ErrorKind.NOT_FOUND),
    ("is locked by",
     "This flight is currently being edited by another user.",
     ErrorKind.FORBIDDEN),
    ("permission denied",
     "You do not have permission to perform this action.",
     ErrorKind.FORBIDDEN),
    ("network",
     "Unable to connect to the database. Please check your internet connection.",
     ErrorKind.UNAVAILABLE),
]

GENERIC_ERROR_MESSAGE = "An error occurred while accessing the database."

MALFORMED_RECORD_MESSAGE = "A stored record could not be read. Please contact support."

RETRIES_EXHAUSTED_MESSAGE = (
    "Database operation failed: {error}. Please check your connection and try again."
)

OFFLINE_MESSAGE = "Unable to connect to the database. Please check your internet connection."


def describe_error(error: Any) -> Tuple[str, ErrorKind]:
    """Map a backend error to (message, kind)"""
    text = error_message(error).lower()
    for fragment, message, kind in ERROR_MESSAGES:
        if fragment in text:
            return message, kind
    return GENERIC_ERROR_MESSAGE, ErrorKind.UNKNOWN
