"""
Unit tests for eligibility evaluation.
"""

from datetime import date

import pytest

from service_support.app.access.models import AcademicInfo, Role, User, UserProfile
from service_support.app.eligibility import EligibilityEvaluator, calculate_age, check_eligibility, evaluate
from service_support.app.eligibility.levels import describe_level, level_group, level_rank
from service_support.app.support.models import AmountTier, EligibilityRules, SupportConfiguration

TODAY = date(2025, 1, 10)


def make_config(**rules) -> SupportConfiguration:
    return SupportConfiguration(
        id="config-1",
        tenant_id="tenant-1",
        support_type="school_fees",
        display_name="School Fees Support",
        eligibility_rules=EligibilityRules(**rules),
        amount_config=[
            AmountTier(academic_level="jss", min_amount=50000, max_amount=200000, default_amount=100000,
                       frequency="termly", school_type_multipliers={"public": 1.0, "private": 2.0}),
        ],
    )


def make_beneficiary(level="jss_2", school="Unity College", school_type="public", grade=72.0,
                     date_of_birth=date(2010, 6, 15), gender="female", profile=True) -> User:
    return User(
        id="ada-1",
        subject="subject-ada",
        email="ada@foundation.org",
        first_name="Ada",
        last_name="Obi",
        role=Role.BENEFICIARY,
        tenant_id="tenant-1",
        profile=UserProfile(
            date_of_birth=date_of_birth,
            gender=gender,
            academic_info=AcademicInfo(
                current_level=level,
                current_school=school,
                school_type=school_type,
                last_grade_percentage=grade,
            ),
        ) if profile else None,
    )


class TestLevels:
    """Test cases for academic level ordering."""

    def test_order(self):
        assert level_rank("nursery_1") < level_rank("primary_6") < level_rank("jss_1")
        assert level_rank("sss_3") < level_rank("university_1") < level_rank("university_6")

    def test_unknown_level_has_no_rank(self):
        assert level_rank("grade_9") is None
        assert level_rank(None) is None

    def test_groups(self):
        assert level_group("jss_2") == "jss"
        assert level_group("university_4") == "university"
        assert level_group("masters_1") == "all"

    def test_describe(self):
        assert describe_level("university_6") == "university 6"


class TestCalculateAge:
    """Test cases for birthday-adjusted age."""

    def test_day_before_eighteenth_birthday(self):
        assert calculate_age(date(2007, 1, 11), TODAY) == 17

    def test_on_eighteenth_birthday(self):
        assert calculate_age(date(2007, 1, 10), TODAY) == 18

    def test_later_month(self):
        assert calculate_age(date(2007, 2, 1), TODAY) == 17


class TestCheckEligibility:
    """Test cases for check_eligibility."""

    def test_no_profile_is_locked(self):
        result = check_eligibility(make_config(), make_beneficiary(profile=False), TODAY)

        assert result.is_locked is True
        assert result.is_eligible is False
        assert result.reasons == ["Profile not set up"]
        assert result.missing_requirements == ["Complete profile setup"]

    @pytest.mark.parametrize("missing, label", [
        ({"date_of_birth": None}, "Date of birth"),
        ({"level": None}, "Current academic level"),
        ({"school": None}, "Current school"),
    ])
    def test_incomplete_profile_is_locked(self, missing, label):
        result = check_eligibility(make_config(), make_beneficiary(**missing), TODAY)

        assert result.is_locked is True
        assert result.is_eligible is False
        assert result.reasons == ["Profile incomplete"]
        assert result.missing_requirements == [label]

    def test_incomplete_profile_skips_rules(self):
        # the grade would fail, but locking comes first
        config = make_config(requires_min_grade=90)
        result = check_eligibility(config, make_beneficiary(school=None, grade=10), TODAY)
        assert result.reasons == ["Profile incomplete"]

    def test_all_missing_fields_reported(self):
        result = check_eligibility(
            make_config(), make_beneficiary(date_of_birth=None, level=None, school=None), TODAY
        )
        assert result.missing_requirements == ["Date of birth", "Current academic level", "Current school"]

    def test_below_minimum_level(self):
        result = check_eligibility(make_config(min_academic_level="jss_1"), make_beneficiary(level="primary_6"), TODAY)

        assert result.is_eligible is False
        assert result.is_locked is False
        assert result.reasons == ["Requires minimum academic level: jss 1"]
        assert result.required_level == "jss_1"
        assert result.current_level == "primary_6"

    @pytest.mark.parametrize("level", ["jss_1", "sss_2", "university_1"])
    def test_at_or_above_minimum_level(self, level):
        result = check_eligibility(make_config(min_academic_level="jss_1"), make_beneficiary(level=level), TODAY)
        assert result.is_eligible is True
        assert result.reasons == []

    def test_above_maximum_level(self):
        result = check_eligibility(make_config(max_academic_level="sss_3"), make_beneficiary(level="university_2"), TODAY)
        assert result.reasons == ["Exceeds maximum academic level: sss 3"]

    def test_unrecognised_level_is_explicit(self):
        result = check_eligibility(make_config(min_academic_level="jss_1"), make_beneficiary(level="grade_9"), TODAY)

        assert result.is_eligible is False
        assert result.is_locked is False
        assert result.reasons == ["Unrecognised academic level: grade_9"]

    def test_unrecognised_level_without_level_rules(self):
        result = check_eligibility(make_config(), make_beneficiary(level="grade_9"), TODAY)
        assert result.is_eligible is True

    def test_age_bounds(self):
        # born 2010-06-15, 14 on the evaluation date
        too_young = check_eligibility(make_config(min_age=16), make_beneficiary(), TODAY)
        too_old = check_eligibility(make_config(max_age=12), make_beneficiary(), TODAY)

        assert too_young.reasons == ["Requires minimum age: 16 years (you are 14)"]
        assert too_old.reasons == ["Exceeds maximum age: 12 years (you are 14)"]

    def test_gender_restriction(self):
        config = make_config(gender_restriction="male")

        assert check_eligibility(config, make_beneficiary(gender="female"), TODAY).reasons == [
            "Restricted to male applicants"
        ]
        assert check_eligibility(config, make_beneficiary(gender=None), TODAY).is_eligible is False
        assert check_eligibility(config, make_beneficiary(gender="male"), TODAY).is_eligible is True

    def test_grade_below_threshold(self):
        result = check_eligibility(make_config(requires_min_grade=50), make_beneficiary(grade=45), TODAY)
        assert result.reasons == ["Requires minimum grade: 50% (you have 45%)"]

    def test_missing_grade_is_a_requirement_not_a_failure(self):
        result = check_eligibility(make_config(requires_min_grade=50), make_beneficiary(grade=None), TODAY)

        assert result.is_eligible is True
        assert result.missing_requirements == ["Academic performance record"]

    def test_school_type_restriction(self):
        config = make_config(school_type_restriction=["public"])

        assert check_eligibility(config, make_beneficiary(school_type="private"), TODAY).reasons == [
            "Restricted to public schools (yours: private)"
        ]
        assert check_eligibility(config, make_beneficiary(school_type=None), TODAY).is_eligible is False
        assert check_eligibility(config, make_beneficiary(school_type="public"), TODAY).is_eligible is True

    def test_every_failing_rule_is_reported(self):
        config = make_config(min_academic_level="sss_1", min_age=16, gender_restriction="male", requires_min_grade=80)
        result = check_eligibility(config, make_beneficiary(grade=60), TODAY)

        assert result.is_eligible is False
        assert len(result.reasons) == 4
        assert result.reasons[0].startswith("Requires minimum academic level")
        assert result.reasons[-1].startswith("Requires minimum grade")

    def test_none_config_is_a_contract_violation(self):
        with pytest.raises(TypeError):
            check_eligibility(None, make_beneficiary(), TODAY)


class TestEvaluate:
    """Test cases for evaluate and the evaluator wrapper."""

    def test_evaluation_is_pure(self):
        config = make_config(min_academic_level="jss_1", requires_min_grade=50)
        user = make_beneficiary()

        assert evaluate(config, user, TODAY) == evaluate(config, user, TODAY)

    def test_amount_attached(self):
        result = evaluate(make_config(), make_beneficiary(school_type="private"), TODAY)
        assert result.estimated_amount.default == 200000
        assert result.estimated_amount.frequency == "termly"

    def test_none_config_raises(self):
        with pytest.raises(TypeError):
            evaluate(None, make_beneficiary(), TODAY)

    def test_outcomes_are_counted(self, metrics):
        evaluator = EligibilityEvaluator(metrics=metrics)
        configs = [make_config(), make_config(min_academic_level="university_1")]

        results = evaluator.evaluate_all(configs, make_beneficiary(), TODAY)
        evaluator.evaluate(make_config(), make_beneficiary(profile=False), TODAY)

        assert [r.eligibility.is_eligible for _, r in results] == [True, False]
        registry = metrics.registry
        assert registry.get_sample_value("eligibility_evaluations_total", {"outcome": "eligible"}) == 1
        assert registry.get_sample_value("eligibility_evaluations_total", {"outcome": "ineligible"}) == 1
        assert registry.get_sample_value("eligibility_evaluations_total", {"outcome": "locked"}) == 1
