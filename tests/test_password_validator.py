"""
Tests for the password policy
"""
import pytest

from classmate_hub.services.password_validator import PasswordPolicy, PasswordValidator, get_password_validator


class TestPasswordValidator:
    @pytest.mark.parametrize("password", ["Passw0rd1", "Abcdefg1", "Zz9" + "x" * 10])
    def test_valid(self, password):
        assert PasswordValidator().validate(password) == (True, None)

    @pytest.mark.parametrize(
        "password, message",
        [
            ("", "Password is required"),
            ("Pa1", "Password must be at least 8 characters long"),
            ("password1", "Password must contain one uppercase letter"),
            ("PASSWORD1", "Password must contain one lowercase letter"),
            ("Password", "Password must contain one number"),
            ("password", "Password must contain one uppercase letter and one number"),
            ("Aa1" + "b" * 200, "Password must be at most 128 characters long"),
        ],
    )
    def test_invalid(self, password, message):
        assert PasswordValidator().validate(password) == (False, message)

    def test_custom_policy(self):
        validator = PasswordValidator(PasswordPolicy(min_length=4, require_uppercase=False, require_digit=False))
        assert validator.validate("abcd") == (True, None)

    def test_shared_instance(self):
        assert get_password_validator() is get_password_validator()
