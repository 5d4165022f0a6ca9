"""SQLAlchemy models exposed for imports and metadata creation."""
from .session import SessionRecord
from .user import User

__all__ = ["User", "SessionRecord"]
