"""Input validation run before any mutation; returns field-keyed error maps."""

import re

from identity.core.passwords import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
EMAIL_MAX_LEN = 320
NAME_MAX_LEN = 255
ROLE_NAME_MAX_LEN = 64

# Letters, digits and -._@+ (same character set as the default Identity username policy).
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9\-._@+]+$")
# Deliberately loose: one @, something on both sides, a dot in the domain.
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def password_errors(password: str) -> list[str]:
    """Password policy: length bounds plus digit, lowercase, uppercase and symbol."""
    if password is None:
        return ["Password is required."]
    errors = []
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        errors.append(
            f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters."
        )
    if not any(c.isdigit() for c in password):
        errors.append("Password must contain at least one digit.")
    if not any(c.islower() for c in password):
        errors.append("Password must contain at least one lowercase letter.")
    if not any(c.isupper() for c in password):
        errors.append("Password must contain at least one uppercase letter.")
    if all(c.isalnum() for c in password):
        errors.append("Password must contain at least one non-alphanumeric character.")
    return errors


def username_errors(username: str) -> list[str]:
    if not username or not username.strip():
        return ["Username is required."]
    username = username.strip()
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        return [f"Username must be at most {USERNAME_MAX_LEN} characters."]
    if not USERNAME_PATTERN.match(username):
        return ["Username may only contain letters, digits and -._@+ characters."]
    return []


def email_errors(email: str) -> list[str]:
    if not email or not email.strip():
        return ["Email is required."]
    email = email.strip()
    if len(email) > EMAIL_MAX_LEN or not EMAIL_PATTERN.match(email):
        return ["Email is not a valid address."]
    return []


def name_errors(value: str | None, label: str) -> list[str]:
    if value is not None and len(value) > NAME_MAX_LEN:
        return [f"{label} must be at most {NAME_MAX_LEN} characters."]
    return []


def role_name_errors(name: str) -> list[str]:
    if not name or not name.strip():
        return ["Role name is required."]
    if len(name.strip()) > ROLE_NAME_MAX_LEN:
        return [f"Role name must be at most {ROLE_NAME_MAX_LEN} characters."]
    return []


def collect(**fields: list[str]) -> dict[str, list[str]]:
    """Drop fields without errors: collect(email=[...], password=[]) -> {'email': [...]}."""
    return {name: errs for name, errs in fields.items() if errs}
