"""
Advisory validation for client input.

Nothing here blocks creation. The repository accepts any input and fills
in defaults; callers that want to warn a coach about incomplete records
run this check first and decide what to do with the messages.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating client input. Errors keep their check order."""
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_client_data(data: Mapping[str, Any]) -> ValidationResult:
    """Check the fields every client record should have."""
    errors: list[str] = []

    if not data.get("firstName"):
        errors.append("First name is required")
    if not data.get("lastName"):
        errors.append("Last name is required")

    email = data.get("email")
    if not email:
        errors.append("Email is required")
    elif not isinstance(email, str) or not EMAIL_PATTERN.search(email):
        errors.append("Invalid email format")

    return ValidationResult(is_valid=not errors, errors=errors)
