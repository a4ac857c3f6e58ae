"""
Default support programs seeded into a new foundation.
"""

from typing import List

from .models import SupportConfigCreateRequest

_TERMLY_MULTIPLIERS = {"public": 1.0, "private": 2.0, "international": 3.0}


def default_configurations() -> List[SupportConfigCreateRequest]:
    """School fees, monthly upkeep and examination fees programs."""
    return [
        SupportConfigCreateRequest(
            support_type="school_fees",
            display_name="School Fees Support",
            description="Financial assistance for tuition fees",
            icon="GraduationCap",
            color="emerald",
            eligibility_rules={
                "min_academic_level": "primary_1",
                "max_academic_level": "university_6",
                "requires_min_grade": 50,
            },
            amount_config=[
                {
                    "academic_level": "primary",
                    "min_amount": 30000, "max_amount": 150000, "default_amount": 75000,
                    "currency": "NGN", "frequency": "termly",
                    "school_type_multipliers": _TERMLY_MULTIPLIERS,
                },
                {
                    "academic_level": "jss",
                    "min_amount": 50000, "max_amount": 200000, "default_amount": 100000,
                    "currency": "NGN", "frequency": "termly",
                    "school_type_multipliers": _TERMLY_MULTIPLIERS,
                },
                {
                    "academic_level": "sss",
                    "min_amount": 60000, "max_amount": 250000, "default_amount": 120000,
                    "currency": "NGN", "frequency": "termly",
                    "school_type_multipliers": _TERMLY_MULTIPLIERS,
                },
                {
                    "academic_level": "university",
                    "min_amount": 100000, "max_amount": 500000, "default_amount": 250000,
                    "currency": "NGN", "frequency": "per_semester",
                    "school_type_multipliers": {"public": 1.0, "private": 2.5, "international": 4.0},
                },
            ],
            required_documents=[
                {
                    "document_type": "fee_invoice",
                    "display_name": "School Fee Invoice",
                    "description": "Official fee breakdown from school",
                    "is_mandatory": True,
                    "validity_period": 90,
                },
                {
                    "document_type": "report_card",
                    "display_name": "Previous Report Card",
                    "description": "Most recent academic performance",
                    "is_mandatory": True,
                    "validity_period": 180,
                },
            ],
            application_settings={
                "allow_multiple_applications": False,
                "application_deadline": "30 days before term start",
                "auto_approval_threshold": 85,
                "requires_guardian_consent": True,
                "requires_academic_verification": True,
                "processing_days": 7,
            },
            performance_requirements={
                "min_attendance": 75,
                "min_grade_for_renewal": 60,
                "improvement_required": False,
                "review_frequency": "termly",
            },
            priority_weights={
                "academic_performance": 0.4,
                "financial_need": 0.3,
                "attendance": 0.2,
                "special_circumstances": 0.1,
                "previous_support": -0.05,
            },
        ),
        SupportConfigCreateRequest(
            support_type="upkeep",
            display_name="Monthly Upkeep Allowance",
            description="Monthly allowance for books, transportation, and supplies",
            icon="DollarSign",
            color="blue",
            eligibility_rules={"min_academic_level": "jss_1", "requires_min_grade": 60},
            amount_config=[
                {
                    "academic_level": "jss",
                    "min_amount": 10000, "max_amount": 20000, "default_amount": 15000,
                    "currency": "NGN", "frequency": "monthly",
                },
                {
                    "academic_level": "sss",
                    "min_amount": 15000, "max_amount": 25000, "default_amount": 20000,
                    "currency": "NGN", "frequency": "monthly",
                },
                {
                    "academic_level": "university",
                    "min_amount": 20000, "max_amount": 40000, "default_amount": 30000,
                    "currency": "NGN", "frequency": "monthly",
                },
            ],
            required_documents=[
                {
                    "document_type": "expense_budget",
                    "display_name": "Monthly Expense Budget",
                    "description": "Breakdown of monthly expenses",
                    "is_mandatory": True,
                    "validity_period": 30,
                },
            ],
            application_settings={
                "allow_multiple_applications": False,
                "requires_guardian_consent": True,
                "requires_academic_verification": False,
                "processing_days": 3,
            },
            performance_requirements={
                "min_attendance": 80,
                "min_grade_for_renewal": 60,
                "review_frequency": "termly",
            },
            priority_weights={
                "academic_performance": 0.3,
                "financial_need": 0.4,
                "attendance": 0.2,
                "special_circumstances": 0.1,
                "previous_support": 0,
            },
        ),
        SupportConfigCreateRequest(
            support_type="exam_fees",
            display_name="Examination Fees Support",
            description="Support for WAEC, JAMB, Post-UTME and other examinations",
            icon="FileText",
            color="orange",
            eligibility_rules={"min_academic_level": "sss_3", "max_academic_level": "university_5"},
            amount_config=[
                {
                    "academic_level": "sss",
                    "min_amount": 10000, "max_amount": 50000, "default_amount": 25000,
                    "currency": "NGN", "frequency": "once",
                },
                {
                    "academic_level": "university",
                    "min_amount": 5000, "max_amount": 30000, "default_amount": 15000,
                    "currency": "NGN", "frequency": "once",
                },
            ],
            required_documents=[
                {
                    "document_type": "exam_registration",
                    "display_name": "Exam Registration Form",
                    "description": "Proof of exam registration",
                    "is_mandatory": True,
                    "validity_period": 60,
                },
            ],
            application_settings={
                "allow_multiple_applications": True,
                "requires_guardian_consent": False,
                "requires_academic_verification": True,
                "processing_days": 5,
            },
            priority_weights={
                "academic_performance": 0.5,
                "financial_need": 0.3,
                "attendance": 0.1,
                "special_circumstances": 0.1,
                "previous_support": 0,
            },
        ),
    ]
