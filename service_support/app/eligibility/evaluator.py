"""
Eligibility and amount evaluation for support programs.

All functions here are pure: the same configuration, user and date always
produce the same result. "Ineligible" and "locked" are ordinary outcomes
carried in the returned data, never exceptions.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .levels import ALL_LEVELS, describe_level, level_group, level_rank
from .models import AmountEstimate, EligibilityResult, SupportEvaluation, ZERO_AMOUNT

if TYPE_CHECKING:
    from ..access.models import User, UserProfile
    from ..support.models import SupportConfiguration

# Used for the amount lookup when the user has no recorded level
DEFAULT_AMOUNT_LEVEL = "primary_1"


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """Whole years since ``date_of_birth``, counting this year's birthday only once reached."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _locked(reason: str, missing: List[str], current_level: Optional[str] = None) -> EligibilityResult:
    return EligibilityResult(
        is_eligible=False,
        is_locked=True,
        reasons=[reason],
        missing_requirements=missing,
        current_level=current_level,
    )


def _check_level(rules, current_level: str) -> List[str]:
    if rules.min_academic_level is None and rules.max_academic_level is None:
        return []

    rank = level_rank(current_level)
    if rank is None:
        return [f"Unrecognised academic level: {current_level}"]

    reasons = []
    if rules.min_academic_level is not None:
        min_rank = level_rank(rules.min_academic_level)
        if min_rank is None:
            raise ValueError(f"configuration has unknown min_academic_level {rules.min_academic_level!r}")
        if rank < min_rank:
            reasons.append(f"Requires minimum academic level: {describe_level(rules.min_academic_level)}")

    if rules.max_academic_level is not None:
        max_rank = level_rank(rules.max_academic_level)
        if max_rank is None:
            raise ValueError(f"configuration has unknown max_academic_level {rules.max_academic_level!r}")
        if rank > max_rank:
            reasons.append(f"Exceeds maximum academic level: {describe_level(rules.max_academic_level)}")

    return reasons


def _check_age(rules, date_of_birth: date, today: date) -> List[str]:
    age = calculate_age(date_of_birth, today)
    reasons = []
    if rules.min_age is not None and age < rules.min_age:
        reasons.append(f"Requires minimum age: {rules.min_age} years (you are {age})")
    if rules.max_age is not None and age > rules.max_age:
        reasons.append(f"Exceeds maximum age: {rules.max_age} years (you are {age})")
    return reasons


def _check_grade(rules, grade: Optional[float]) -> Tuple[List[str], List[str]]:
    """Returns (reasons, missing requirements)."""
    if rules.requires_min_grade is None:
        return [], []
    if grade is None:
        return [], ["Academic performance record"]
    if grade < rules.requires_min_grade:
        return [f"Requires minimum grade: {rules.requires_min_grade:g}% (you have {grade:g}%)"], []
    return [], []


def _check_school_type(rules, school_type: Optional[str]) -> List[str]:
    allowed = rules.school_type_restriction
    if not allowed:
        return []
    if school_type is None:
        return [f"School type required: {', '.join(allowed)}"]
    if school_type not in allowed:
        return [f"Restricted to {', '.join(allowed)} schools (yours: {school_type})"]
    return []


def check_eligibility(config: "SupportConfiguration", user: "User",
                      today: Optional[date] = None) -> EligibilityResult:
    """Check ``user`` against the eligibility rules of ``config``.

    A missing or incomplete profile locks the program before any rule is
    looked at. Otherwise every rule is checked and every failure reported.
    """
    if config is None:
        raise TypeError("config is required")

    today = today or date.today()
    rules = config.eligibility_rules
    profile = user.profile

    if profile is None:
        return _locked("Profile not set up", ["Complete profile setup"])

    academic = profile.academic_info
    current_level = academic.current_level if academic else None

    missing = []
    if profile.date_of_birth is None:
        missing.append("Date of birth")
    if not current_level:
        missing.append("Current academic level")
    if not (academic and academic.current_school):
        missing.append("Current school")
    if missing:
        return _locked("Profile incomplete", missing, current_level)

    reasons: List[str] = []
    reasons += _check_level(rules, current_level)
    reasons += _check_age(rules, profile.date_of_birth, today)

    if rules.gender_restriction is not None and profile.gender != rules.gender_restriction:
        reasons.append(f"Restricted to {rules.gender_restriction} applicants")

    grade_reasons, missing = _check_grade(rules, academic.last_grade_percentage)
    reasons += grade_reasons
    reasons += _check_school_type(rules, academic.school_type)

    return EligibilityResult(
        is_eligible=not reasons,
        is_locked=False,
        reasons=reasons,
        missing_requirements=missing,
        required_level=rules.min_academic_level,
        current_level=current_level,
    )


def calculate_amount(config: "SupportConfiguration", academic_level: str,
                     profile: Optional["UserProfile"] = None) -> AmountEstimate:
    """Amount range for ``academic_level``, scaled by the school-type multiplier."""
    if config is None:
        raise TypeError("config is required")

    group = level_group(academic_level)
    tier = next(
        (t for t in config.amount_config if t.academic_level == group or t.academic_level == ALL_LEVELS),
        None
    )
    if tier is None:
        return ZERO_AMOUNT

    multiplier = 1.0
    school_type = profile.academic_info.school_type if profile and profile.academic_info else None
    if school_type and tier.school_type_multipliers:
        multiplier = tier.school_type_multipliers.for_school_type(school_type)

    return AmountEstimate(
        min=_round_half_up(tier.min_amount * multiplier),
        max=_round_half_up(tier.max_amount * multiplier),
        default=_round_half_up(tier.default_amount * multiplier),
        currency=tier.currency,
        frequency=tier.frequency,
    )


def evaluate(config: "SupportConfiguration", user: "User", today: Optional[date] = None) -> SupportEvaluation:
    """Eligibility plus estimated amount for one program and one user."""
    if config is None:
        raise TypeError("config is required")

    eligibility = check_eligibility(config, user, today)
    academic = user.profile.academic_info if user.profile else None
    level = (academic.current_level if academic else None) or DEFAULT_AMOUNT_LEVEL

    return SupportEvaluation(
        eligibility=eligibility,
        estimated_amount=calculate_amount(config, level, user.profile),
    )


class EligibilityEvaluator:
    """Runs ``evaluate`` over a tenant's programs with logging and metrics."""

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics
        self.logger = get_logger("support.eligibility")

    def evaluate(self, config: "SupportConfiguration", user: "User",
                 today: Optional[date] = None) -> SupportEvaluation:
        result = evaluate(config, user, today)
        self._record(result.eligibility)
        return result

    def evaluate_all(self, configs: Iterable["SupportConfiguration"], user: "User",
                     today: Optional[date] = None) -> List[Tuple["SupportConfiguration", SupportEvaluation]]:
        today = today or date.today()
        results = [(config, self.evaluate(config, user, today)) for config in configs]

        self.logger.debug(
            "Evaluated support programs",
            user_id=user.id,
            programs=len(results),
            eligible=sum(1 for _, r in results if r.eligibility.is_eligible)
        )
        return results

    def _record(self, eligibility: EligibilityResult):
        if not self.metrics:
            return
        if eligibility.is_locked:
            outcome = "locked"
        elif eligibility.is_eligible:
            outcome = "eligible"
        else:
            outcome = "ineligible"
        self.metrics.increment_counter("eligibility_evaluations_total", outcome=outcome)
