"""
Eligibility evaluation package.

Pure functions deciding whether a user qualifies for a support program and
what amount they would receive. Nothing here performs I/O or keeps state;
callers pass the configuration and user in and get plain results back.

Modules of interest:
- levels: Academic level order, level groups and comparisons.
- models: Eligibility, amount and combined evaluation results.
- evaluator: Rule checks, age computation and amount calculation.
"""

from .evaluator import EligibilityEvaluator, calculate_age, calculate_amount, check_eligibility, evaluate
from .models import AmountEstimate, EligibilityResult, SupportEvaluation

__all__ = [
    "EligibilityEvaluator",
    "calculate_age",
    "calculate_amount",
    "check_eligibility",
    "evaluate",
    "AmountEstimate",
    "EligibilityResult",
    "SupportEvaluation",
]
