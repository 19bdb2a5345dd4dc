# SPDX-License-Identifier: Apache-2.0

"""
Family verification workflow.

A family starts PENDING and an administrator decides VERIFIED or REJECTED.
Decisions may be revised; ``is_terminal`` lets stricter callers refuse that.
"""

from typing import List, Optional
from dataclasses import dataclass, field
from ..models.enums import VerificationStatus

DECISION_OUTCOMES = (VerificationStatus.VERIFIED.value, VerificationStatus.REJECTED.value)


@dataclass
class ValidationResult:
    """Result of a verification decision check."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    outcome: Optional[str] = None


def normalize_status(status) -> Optional[str]:
    """Status as its enum value, or None if unknown."""
    try:
        return VerificationStatus(status).value
    except ValueError:
        return None


def validate_decision(outcome) -> ValidationResult:
    """
    Validate an administrator decision.

    Args:
        outcome: Requested verification status

    Returns:
        ValidationResult carrying the normalized outcome
    """
    value = normalize_status(outcome)
    if value not in DECISION_OUTCOMES:
        return ValidationResult(
            is_valid=False,
            errors=[f"Status must be one of: {', '.join(DECISION_OUTCOMES)}"]
        )
    return ValidationResult(is_valid=True, outcome=value)


def is_terminal(status) -> bool:
    """True once a decision has been made."""
    return normalize_status(status) in DECISION_OUTCOMES


def decision_message(outcome) -> str:
    return f"Family {normalize_status(outcome).lower()} successfully"
