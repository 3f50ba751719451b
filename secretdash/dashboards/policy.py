"""
Secret Policy Rules.

Format rules, password strength heuristics and helpers shared by the
validation, security and expiration dashboards.

Author: SecretDash Team
Date: 2026-09-05
"""

import math
import re
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'
_SPECIAL_PATTERN = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")
_REPEATED_PATTERN = re.compile(r"(.)\1{2,}")
_SEQUENCE_PATTERN = re.compile(r"123|abc|qwe", re.IGNORECASE)

_PASSWORD_POLICY_MARKERS = ("uppercase", "lowercase", "numbers", "special", "short", "long")


class SecretRule(BaseModel):
    """Policy for one secret.

    Attributes:
        min_length: Minimum value length
        max_length: Maximum value length
        require_uppercase: Value must contain A-Z
        require_lowercase: Value must contain a-z
        require_numbers: Value must contain 0-9
        require_special: Value must contain one of ``SPECIAL_CHARACTERS``
        pattern: Regular expression the whole value must match
        max_age_days: Maximum days between updates
        rotation_required: Whether exceeding ``max_age_days`` is a violation
    """

    min_length: Optional[int] = Field(default=None, alias="minLength")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    require_uppercase: bool = Field(default=False, alias="requireUppercase")
    require_lowercase: bool = Field(default=False, alias="requireLowercase")
    require_numbers: bool = Field(default=False, alias="requireNumbers")
    require_special: bool = Field(default=False, alias="requireSpecial")
    pattern: Optional[str] = None
    max_age_days: Optional[int] = Field(default=None, alias="maxAge")
    rotation_required: bool = Field(default=False, alias="rotationRequired")

    model_config = ConfigDict(populate_by_name=True)


DEFAULT_RULES: Dict[str, SecretRule] = {
    "database-password": SecretRule(
        min_length=12,
        max_length=128,
        require_uppercase=True,
        require_lowercase=True,
        require_numbers=True,
        require_special=True,
        max_age_days=90,
        rotation_required=True,
    ),
    "api-key": SecretRule(
        min_length=32,
        max_length=256,
        pattern=r"^[A-Za-z0-9]+$",
        max_age_days=180,
        rotation_required=True,
    ),
    "hello-world-secret": SecretRule(
        min_length=1,
        max_length=1000,
        max_age_days=365,
        rotation_required=False,
    ),
}


def validate_format(
    name: str,
    value: str,
    rules: Optional[Dict[str, SecretRule]] = None
) -> Dict[str, Any]:
    """
    Check a secret value against its rule.

    Secrets without a rule only get the generic warnings.

    Args:
        name: Secret name
        value: Secret value
        rules: Rule set (``DEFAULT_RULES`` if None)

    Returns:
        Dict with ``valid``, ``issues``, ``warnings``, ``length`` and the
        ``hasUppercase``/``hasLowercase``/``hasNumbers``/``hasSpecial`` flags
    """
    rule = (rules if rules is not None else DEFAULT_RULES).get(name) or SecretRule()
    issues = []
    warnings = []

    has_upper = bool(re.search(r"[A-Z]", value))
    has_lower = bool(re.search(r"[a-z]", value))
    has_numbers = bool(re.search(r"[0-9]", value))
    has_special = bool(_SPECIAL_PATTERN.search(value))

    if rule.min_length and len(value) < rule.min_length:
        issues.append(f"Too short: minimum {rule.min_length} characters, got {len(value)}")
    if rule.max_length and len(value) > rule.max_length:
        issues.append(f"Too long: maximum {rule.max_length} characters, got {len(value)}")

    if rule.require_uppercase and not has_upper:
        issues.append("Missing uppercase letters")
    if rule.require_lowercase and not has_lower:
        issues.append("Missing lowercase letters")
    if rule.require_numbers and not has_numbers:
        issues.append("Missing numbers")
    if rule.require_special and not has_special:
        issues.append("Missing special characters")

    if rule.pattern and not re.search(rule.pattern, value):
        issues.append(f"Does not match required pattern: {rule.pattern}")

    if " " in value and "password" in name:
        warnings.append("Contains spaces (may cause issues in some systems)")

    return {
        "valid": not issues,
        "issues": issues,
        "warnings": warnings,
        "length": len(value),
        "hasUppercase": has_upper,
        "hasLowercase": has_lower,
        "hasNumbers": has_numbers,
        "hasSpecial": has_special,
    }


def is_password_policy_issue(issue: str) -> bool:
    """True for length and character-class violations."""
    return any(marker in issue for marker in _PASSWORD_POLICY_MARKERS)


def recommend_fix(name: str, validation: Dict[str, Any], rules: Optional[Dict[str, SecretRule]] = None) -> str:
    """Suggest the first change that would make a value compliant."""
    if validation.get("valid"):
        return "Secret is compliant"

    rule = (rules if rules is not None else DEFAULT_RULES).get(name) or SecretRule()
    issues = validation.get("issues", [])

    def has(prefix: str) -> bool:
        return any(issue.startswith(prefix) for issue in issues)

    if has("Too short"):
        return f"Increase length to at least {rule.min_length or 'required'} characters"
    if has("Too long"):
        return f"Reduce length to maximum {rule.max_length or 'allowed'} characters"
    if has("Missing uppercase"):
        return "Add uppercase letters (A-Z)"
    if has("Missing lowercase"):
        return "Add lowercase letters (a-z)"
    if has("Missing numbers"):
        return "Add numbers (0-9)"
    if has("Missing special"):
        return "Add special characters (!@#$%^&*)"
    return "Review validation rules and update secret format"


def password_strength(value: Optional[str]) -> Dict[str, Any]:
    """
    Score a secret value from 0 to 100.

    Returns:
        ``{"score": int, "feedback": str}``
    """
    if not value:
        return {"score": 0, "feedback": "No password"}

    score = 0
    feedback = []

    if len(value) >= 12:
        score += 25
    elif len(value) >= 8:
        score += 15
    else:
        feedback.append("Consider longer password")

    if re.search(r"[a-z]", value):
        score += 10
    if re.search(r"[A-Z]", value):
        score += 10
    if re.search(r"[0-9]", value):
        score += 10
    if re.search(r"[^A-Za-z0-9]", value):
        score += 15

    if len(set(value)) > len(value) * 0.6:
        score += 10

    if not _REPEATED_PATTERN.search(value):
        score += 10
    if not _SEQUENCE_PATTERN.search(value):
        score += 10

    if score < 30:
        feedback.append("Very weak")
    elif score < 50:
        feedback.append("Weak")
    elif score < 70:
        feedback.append("Moderate")
    elif score < 90:
        feedback.append("Strong")
    else:
        feedback.append("Very strong")

    return {"score": min(score, 100), "feedback": ", ".join(feedback)}


def mask_secret(value: Optional[str]) -> str:
    """Show only the first and last two characters of a value."""
    if not value:
        return "N/A"
    if len(value) <= 4:
        return "****"
    return f"{value[:2]}****{value[-2:]}"


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days from ``earlier`` to ``later`` (negative if reversed)."""
    return math.floor((later - earlier).total_seconds() / 86400)
