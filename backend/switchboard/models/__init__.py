# Models package init
"""SQLAlchemy ORM models. Importing a model registers its table on Base.metadata."""

from switchboard.models.user import User

__all__ = ["User"]
