"""
Credential validation shared by the client session store and the backend
registration endpoint, so both enforce the same password policy.
"""

import re
from typing import Tuple

from proofquest.infra.config.settings import get_settings

settings = get_settings()

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CredentialValidator:
    """Validators for email/password credentials."""

    @staticmethod
    def validate_email(email: str) -> Tuple[bool, str]:
        if not email or not email.strip():
            return False, "Email is required"
        if not _EMAIL_RE.match(email.strip()):
            return False, "Please enter a valid email address"
        return True, ""

    @staticmethod
    def validate_password(password: str, min_length: int = None) -> Tuple[bool, str]:
        min_length = min_length or settings.MIN_PASSWORD_LENGTH
        if not password:
            return False, "Password is required"
        if len(password) < min_length:
            return False, f"Password must be at least {min_length} characters"
        return True, ""

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()
