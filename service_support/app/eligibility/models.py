"""
Derived eligibility and amount results. Never persisted.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of checking a user against a program's rules.

    ``is_locked`` differs from ineligible: the profile is too incomplete to
    evaluate the rules at all.
    """
    is_eligible: bool
    is_locked: bool
    reasons: List[str] = field(default_factory=list)
    missing_requirements: List[str] = field(default_factory=list)
    required_level: Optional[str] = None
    current_level: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AmountEstimate:
    min: int
    max: int
    default: int
    currency: str
    frequency: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


ZERO_AMOUNT = AmountEstimate(min=0, max=0, default=0, currency="NGN", frequency="once")


@dataclass(frozen=True)
class SupportEvaluation:
    eligibility: EligibilityResult
    estimated_amount: AmountEstimate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eligibility": self.eligibility.to_dict(),
            "estimated_amount": self.estimated_amount.to_dict(),
        }
