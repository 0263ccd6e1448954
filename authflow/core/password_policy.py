import re

# At least 8 characters: lower, upper, digit and one of @$!%*?&#
_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#]).{8,}$")

PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters long and contain one lowercase letter, "
    "one uppercase letter, one number and one special character (@$!%*?&#)"
)


class PasswordPolicyError(ValueError):
    pass


def validate_password(password: str) -> None:
    if not _PASSWORD_RE.match(password or ""):
        raise PasswordPolicyError("WEAK_PASSWORD")
