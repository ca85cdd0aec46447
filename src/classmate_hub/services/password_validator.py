"""
Password Validation Service
Minimum length plus upper, lower and digit requirements
"""
import re
from typing import Optional, Tuple


class PasswordPolicy:
    """Password policy configuration"""

    def __init__(
        self,
        min_length: int = 8,
        max_length: int = 128,
        require_uppercase: bool = True,
        require_lowercase: bool = True,
        require_digit: bool = True,
    ):
        self.min_length = min_length
        self.max_length = max_length
        self.require_uppercase = require_uppercase
        self.require_lowercase = require_lowercase
        self.require_digit = require_digit


class PasswordValidator:
    """
    Password validator with configurable policy

    Usage:
        validator = PasswordValidator()
        is_valid, error = validator.validate("Passw0rd1")
        if not is_valid:
            raise ValidationFailedError(error, field="password")
    """

    def __init__(self, policy: Optional[PasswordPolicy] = None):
        self.policy = policy or PasswordPolicy()

    def validate(self, password: str) -> Tuple[bool, Optional[str]]:
        """
        Validate password against policy

        Returns:
            (True, None) if valid, otherwise (False, "error message")
        """
        if not password:
            return False, "Password is required"

        if len(password) < self.policy.min_length:
            return False, f"Password must be at least {self.policy.min_length} characters long"

        if len(password) > self.policy.max_length:
            return False, f"Password must be at most {self.policy.max_length} characters long"

        missing = []
        if self.policy.require_uppercase and not re.search(r'[A-Z]', password):
            missing.append("one uppercase letter")
        if self.policy.require_lowercase and not re.search(r'[a-z]', password):
            missing.append("one lowercase letter")
        if self.policy.require_digit and not re.search(r'\d', password):
            missing.append("one number")

        if missing:
            if len(missing) == 1:
                return False, f"Password must contain {missing[0]}"
            return False, f"Password must contain {', '.join(missing[:-1])} and {missing[-1]}"

        return True, None


_validator: Optional[PasswordValidator] = None


def get_password_validator() -> PasswordValidator:
    """Get the shared validator instance"""
    global _validator
    if _validator is None:
        _validator = PasswordValidator()
    return _validator
