"""
Password Strength Validator

Evaluates every rule on a candidate password (no short-circuit) and combines
the structural checks with a zxcvbn entropy estimate.
"""

import re
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field
from zxcvbn import zxcvbn

# zxcvbn refuses very long inputs; everything past this is ignored for scoring
ZXCVBN_MAX_INPUT = 72

COMMON_PASSWORDS = frozenset(
    {
        "password",
        "password123",
        "123456789",
        "qwerty123",
        "admin123",
        "welcome123",
        "letmein123",
        "password1",
    }
)

STRENGTH_LABELS = ("Very Weak", "Weak", "Fair", "Good", "Strong")

LOWERCASE_RE = re.compile(r"[a-z]")
UPPERCASE_RE = re.compile(r"[A-Z]")
DIGIT_RE = re.compile(r"\d")
SYMBOL_RE = re.compile(r"[^A-Za-z0-9]")
SEQUENTIAL_RE = re.compile(
    r"abc|bcd|cde|def|efg|fgh|ghi|hij|ijk|jkl|klm|lmn|mno|nop|opq|pqr|qrs|rst|stu"
    r"|tuv|uvw|vwx|wxy|xyz|012|123|234|345|456|567|678|789",
    re.IGNORECASE,
)
REPEATING_RE = re.compile(r"(.)\1{2,}")
KEYBOARD_RE = re.compile(
    r"qwe|wer|ert|rty|tyu|yui|uio|iop|asd|sdf|dfg|fgh|ghj|hjk|jkl|zxc|xcv|cvb|vbn|bnm",
    re.IGNORECASE,
)

RULE_MESSAGES = {
    "min_length": "Password must be at least {min_length} characters long",
    "max_length": "Password must be no more than {max_length} characters long",
    "lowercase": "Password must contain at least one lowercase letter",
    "uppercase": "Password must contain at least one uppercase letter",
    "digit": "Password must contain at least one number",
    "symbol": "Password must contain at least one special character",
    "not_common": "Password is too common. Please choose a more unique password",
    "not_personal": "Password cannot contain personal information",
    "not_sequential": "Password cannot contain sequential characters (e.g., abc, 123)",
    "not_repeating": "Password cannot contain more than 2 repeating characters",
    "not_keyboard": "Password cannot contain keyboard patterns (e.g., qwerty, asdf)",
    "entropy": "Password is too easy to guess",
}


class AccountContext(BaseModel):
    """Attributes of the account a password is meant for"""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class StrengthReport(BaseModel):
    valid: bool
    score: int
    label: str
    failed_rules: List[str] = Field(default_factory=list)
    feedback: List[str] = Field(default_factory=list)


def strength_label(score: int) -> str:
    return STRENGTH_LABELS[max(0, min(score, len(STRENGTH_LABELS) - 1))]


class PasswordStrengthValidator:
    """
    Business Rules:
    - Structural rules: length 10..128, lower, upper, digit, symbol
    - Rejects common passwords, personal info, sequences, repeats, keyboard runs
    - zxcvbn score (0-4) with account attributes as user inputs must reach min_score
    - valid = every rule passed AND score >= min_score
    """

    def __init__(
        self,
        min_length: int = 10,
        max_length: int = 128,
        min_score: int = 2,
        blocklist: Optional[Iterable[str]] = None,
        blocked_terms: Optional[Iterable[str]] = None,
    ):
        self.min_length = min_length
        self.max_length = max_length
        self.min_score = min_score
        self.blocklist = COMMON_PASSWORDS | {p.lower() for p in (blocklist or [])}
        self.blocked_terms = [t.lower() for t in (blocked_terms or []) if t]

    def _personal_terms(self, context: AccountContext) -> List[str]:
        terms = list(self.blocked_terms)
        if context.name:
            terms.extend(part.lower() for part in context.name.split() if len(part) >= 3)
        if context.email:
            email = context.email.lower()
            terms.append(email)
            local_part = email.split("@", 1)[0]
            if len(local_part) >= 3:
                terms.append(local_part)
        if context.phone:
            digits = re.sub(r"\D", "", context.phone)
            if len(digits) >= 4:
                terms.append(digits)
        return terms

    def _user_inputs(self, context: AccountContext) -> List[str]:
        inputs = [v for v in (context.name, context.email, context.phone) if v]
        if context.name:
            inputs.extend(context.name.split())
        if context.email:
            inputs.append(context.email.split("@", 1)[0])
        return inputs + self.blocked_terms

    def validate(
        self, candidate: str, context: Optional[AccountContext] = None
    ) -> StrengthReport:
        context = context or AccountContext()
        lowered = candidate.lower()

        checks = {
            "min_length": len(candidate) >= self.min_length,
            "max_length": len(candidate) <= self.max_length,
            "lowercase": bool(LOWERCASE_RE.search(candidate)),
            "uppercase": bool(UPPERCASE_RE.search(candidate)),
            "digit": bool(DIGIT_RE.search(candidate)),
            "symbol": bool(SYMBOL_RE.search(candidate)),
            "not_common": lowered not in self.blocklist,
            "not_personal": not any(t in lowered for t in self._personal_terms(context)),
            "not_sequential": not SEQUENTIAL_RE.search(candidate),
            "not_repeating": not REPEATING_RE.search(candidate),
            "not_keyboard": not KEYBOARD_RE.search(candidate),
        }

        score = 0
        zxcvbn_feedback: List[str] = []
        if candidate:
            estimate = zxcvbn(candidate[:ZXCVBN_MAX_INPUT], user_inputs=self._user_inputs(context))
            score = int(estimate["score"])
            warning = estimate["feedback"].get("warning")
            if warning:
                zxcvbn_feedback.append(warning)
            zxcvbn_feedback.extend(estimate["feedback"].get("suggestions") or [])
        checks["entropy"] = score >= self.min_score

        failed_rules = [rule for rule, passed in checks.items() if not passed]
        feedback = [
            RULE_MESSAGES[rule].format(min_length=self.min_length, max_length=self.max_length)
            for rule in failed_rules
        ]
        feedback.extend(f for f in zxcvbn_feedback if f not in feedback)

        return StrengthReport(
            valid=not failed_rules,
            score=score,
            label=strength_label(score),
            failed_rules=failed_rules,
            feedback=feedback,
        )
