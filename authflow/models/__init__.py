# authflow/models/__init__.py

from authflow.models.user import User  # noqa: F401
from authflow.models.verification_token import VerificationToken  # noqa: F401
from authflow.models.password_reset_token import PasswordResetToken  # noqa: F401
from authflow.models.refresh_token import RefreshToken  # noqa: F401
