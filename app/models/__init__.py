# Auth models
# Import all models here for SQLAlchemy discovery

from app.models.user import User                  # noqa
from app.models.otp_token import OTPToken         # noqa
from app.models.user_session import UserSession   # noqa
