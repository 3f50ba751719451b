"""
Tests for secret policy rules and helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from secretdash.dashboards.policy import (
    DEFAULT_RULES,
    SecretRule,
    days_between,
    is_password_policy_issue,
    mask_secret,
    password_strength,
    recommend_fix,
    validate_format,
)


class TestValidateFormat:
    """Test rule validation."""

    def test_compliant_database_password(self):
        """Test a value meeting every requirement."""
        result = validate_format("database-password", "SuperSecureDatabasePassword123!")

        assert result["valid"] is True
        assert result["issues"] == []
        assert result["hasSpecial"] is True
        assert result["length"] == 31

    def test_database_password_issues(self):
        """Test each missing character class is reported."""
        result = validate_format("database-password", "short")

        assert result["valid"] is False
        assert "Too short: minimum 12 characters, got 5" in result["issues"]
        assert "Missing uppercase letters" in result["issues"]
        assert "Missing numbers" in result["issues"]
        assert "Missing special characters" in result["issues"]
        assert "Missing lowercase letters" not in result["issues"]

    def test_api_key_pattern(self):
        """Test the alphanumeric pattern of API keys."""
        assert validate_format("api-key", "sk1234567890abcdef1234567890abcdef")["valid"] is True

        result = validate_format("api-key", "sk-1234567890abcdef1234567890abcdef")
        assert result["issues"] == ["Does not match required pattern: ^[A-Za-z0-9]+$"]

    def test_too_long(self):
        """Test the maximum length."""
        result = validate_format("hello-world-secret", "x" * 1001)

        assert result["issues"] == ["Too long: maximum 1000 characters, got 1001"]

    def test_unknown_secret_has_no_rule(self):
        """Test secrets without a rule are always valid."""
        assert validate_format("jwt-secret", "a")["valid"] is True

    def test_password_with_spaces_warns(self):
        """Test spaces in passwords are a warning, not an issue."""
        result = validate_format("redis-password", "has a space")

        assert result["valid"] is True
        assert result["warnings"] == ["Contains spaces (may cause issues in some systems)"]

    def test_custom_rules(self):
        """Test a caller-supplied rule set replaces the defaults."""
        rules = {"pin": SecretRule(min_length=4, pattern=r"^\d+$")}

        assert validate_format("pin", "1234", rules)["valid"] is True
        assert validate_format("database-password", "x", rules)["valid"] is True

    def test_rule_aliases(self):
        """Test camelCase rule keys are accepted."""
        rule = SecretRule.model_validate({"minLength": 8, "maxAge": 30, "rotationRequired": True})

        assert rule.min_length == 8
        assert rule.max_age_days == 30
        assert rule.rotation_required is True


class TestRecommendFix:
    """Test fix recommendations."""

    def test_compliant(self):
        """Test compliant values."""
        assert recommend_fix("api-key", {"valid": True, "issues": []}) == "Secret is compliant"

    @pytest.mark.parametrize("value,expected", [
        ("Ab1!", "Increase length to at least 12 characters"),
        ("abcdefghijk1!x", "Add uppercase letters (A-Z)"),
        ("ABCDEFGHIJK1!X", "Add lowercase letters (a-z)"),
        ("Abcdefghijkl!", "Add numbers (0-9)"),
        ("Abcdefghijkl1", "Add special characters (!@#$%^&*)"),
    ])
    def test_first_issue_wins(self, value, expected):
        """Test the recommendation addresses the first issue."""
        validation = validate_format("database-password", value)

        assert recommend_fix("database-password", validation) == expected

    def test_pattern_issue(self):
        """Test a pattern-only failure gets the generic advice."""
        validation = validate_format("api-key", "not-alphanumeric-but-long-enough-key")

        assert recommend_fix("api-key", validation) == "Review validation rules and update secret format"


class TestPasswordStrength:
    """Test strength scoring."""

    def test_empty(self):
        """Test missing values score zero."""
        assert password_strength(None) == {"score": 0, "feedback": "No password"}
        assert password_strength("") == {"score": 0, "feedback": "No password"}

    def test_weak(self):
        """Test a short repetitive value."""
        result = password_strength("aaa")

        assert result["score"] < 30
        assert result["feedback"] == "Consider longer password, Very weak"

    def test_strong(self):
        """Test a long mixed value."""
        result = password_strength("Xk9#mP2$vL7@qR4!")

        assert result["score"] == 100
        assert result["feedback"] == "Very strong"

    def test_sequence_penalised(self):
        """Test common sequences lose points."""
        assert password_strength("Xk9#mP2$vL7@qR4!")["score"] > password_strength("Xk9#mP2$vL7@q123")["score"]


class TestHelpers:
    """Test small helpers."""

    @pytest.mark.parametrize("issue,expected", [
        ("Too short: minimum 12 characters, got 5", True),
        ("Missing uppercase letters", True),
        ("Missing special characters", True),
        ("Does not match required pattern: ^x$", False),
        ("Secret has expired", False),
    ])
    def test_is_password_policy_issue(self, issue, expected):
        """Test length and character-class issues are password policy issues."""
        assert is_password_policy_issue(issue) is expected

    @pytest.mark.parametrize("value,expected", [
        (None, "N/A"),
        ("", "N/A"),
        ("abcd", "****"),
        ("SuperSecret", "Su****et"),
    ])
    def test_mask_secret(self, value, expected):
        """Test masking keeps only the first and last two characters."""
        assert mask_secret(value) == expected

    def test_days_between(self):
        """Test whole days are floored."""
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert days_between(start, start + timedelta(days=3, hours=23)) == 3
        assert days_between(start, start - timedelta(hours=1)) == -1

    def test_default_rules(self):
        """Test the default rule set covers the demo secrets."""
        assert set(DEFAULT_RULES) == {"database-password", "api-key", "hello-world-secret"}
        assert DEFAULT_RULES["hello-world-secret"].rotation_required is False
