"""Client-side rules over API records: statuses, amounts, validation, reports."""

from .status import count_by_status, filter_by_status, normalize_status, status_info
from .validation import validate_email, validate_new_password

__all__ = [
    "count_by_status",
    "filter_by_status",
    "normalize_status",
    "status_info",
    "validate_email",
    "validate_new_password",
]
