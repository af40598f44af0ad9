"""SQLAlchemy ORM models."""

from oauthgate.models.base import Base
from oauthgate.models.user import User

__all__ = ["Base", "User"]
