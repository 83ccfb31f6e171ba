"""
Unit tests for PasswordStrengthValidator
"""
import pytest

from src.app.services.password_strength import (
    AccountContext,
    PasswordStrengthValidator,
    strength_label,
)

JANE = AccountContext(name="Jane Doe", email="jane.doe@example.com", phone="+15551234567")


def test_strong_password_passes(strength_validator):
    report = strength_validator.validate("Violet#Harbor7Plume", JANE)

    assert report.valid is True
    assert report.failed_rules == []
    assert report.score >= 3
    assert report.label in ("Good", "Strong")


def test_all_rules_are_evaluated(strength_validator):
    report = strength_validator.validate("password", JANE)

    assert report.valid is False
    assert {"min_length", "uppercase", "digit", "symbol", "not_common", "entropy"} <= set(
        report.failed_rules
    )
    assert len(report.feedback) >= len(report.failed_rules)


@pytest.mark.parametrize(
    "candidate, rule",
    [
        ("Sh0rt!Pw", "min_length"),
        ("VIOLET#HARBOR7PLUME", "lowercase"),
        ("violet#harbor7plume", "uppercase"),
        ("Violet#HarborPlume", "digit"),
        ("Violet8Harbor7Plume", "symbol"),
        ("Xyz#Harbor7Plume", "not_sequential"),
        ("Violet#Harbor789", "not_sequential"),
        ("Viooolet#Harbor7", "not_repeating"),
        ("Qwe#Harbor7Plume", "not_keyboard"),
        ("Violet#Asdf7Plume", "not_keyboard"),
    ],
)
def test_structural_rules(strength_validator, candidate, rule):
    report = strength_validator.validate(candidate, JANE)

    assert rule in report.failed_rules
    assert report.valid is False


def test_max_length(strength_validator):
    report = strength_validator.validate("Violet#Harbor7Plume" * 8, JANE)

    assert "max_length" in report.failed_rules


@pytest.mark.parametrize(
    "candidate",
    ["Jane#Harbor7Plume", "Violet#Doe7Plume!", "Jane.Doe#Harbor7", "Vi15551234567#Pl"],
)
def test_personal_information_rejected(strength_validator, candidate):
    report = strength_validator.validate(candidate, JANE)

    assert "not_personal" in report.failed_rules


def test_site_terms_rejected(strength_validator):
    report = strength_validator.validate("Promise#Harbor7Plume", AccountContext())

    assert "not_personal" in report.failed_rules


def test_configured_blocklist():
    validator = PasswordStrengthValidator(blocklist=["Violet#Harbor7Plume"])

    report = validator.validate("VIOLET#harbor7plume")

    assert "not_common" in report.failed_rules


def test_common_password_case_insensitive(strength_validator):
    report = strength_validator.validate("PASSWORD123", AccountContext())

    assert "not_common" in report.failed_rules


def test_entropy_rule_uses_min_score():
    lenient = PasswordStrengthValidator(min_score=0)
    strict = PasswordStrengthValidator(min_score=4)

    assert "entropy" not in lenient.validate("Violet#Harbor7").failed_rules
    assert "entropy" in strict.validate("Tulip#2").failed_rules


def test_very_long_password_is_scored(strength_validator):
    report = strength_validator.validate("Vi0let#Harbor7Plume-" * 5, JANE)

    assert 0 <= report.score <= 4


def test_empty_password(strength_validator):
    report = strength_validator.validate("", JANE)

    assert report.valid is False
    assert report.score == 0
    assert report.label == "Very Weak"


@pytest.mark.parametrize(
    "score, label",
    [(0, "Very Weak"), (1, "Weak"), (2, "Fair"), (3, "Good"), (4, "Strong"), (9, "Strong")],
)
def test_strength_label(score, label):
    assert strength_label(score) == label
