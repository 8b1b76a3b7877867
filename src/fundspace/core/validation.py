"""Validation helpers shared by the sign-up wizard and API inputs."""

import re
from typing import List, Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ValidationResult:
    """Result of a validation operation."""

    def __init__(self, is_valid: bool = True, errors: Optional[List[str]] = None):
        """Initialize validation result."""
        self.is_valid = is_valid
        self.errors = errors or []

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        self.is_valid = False


def is_valid_email(value) -> bool:
    """Syntactic email check: something@something.something, no whitespace."""
    if not isinstance(value, str):
        return False
    return bool(EMAIL_PATTERN.match(value.strip()))


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
