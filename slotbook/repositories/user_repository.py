# slotbook/repositories/user_repository.py
"""
User Repository for public provider/client profiles.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user profile lookups."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_profile(self, user_id: str, role: Optional[str] = None) -> Optional[User]:
        """Profile by id, optionally restricted to one role."""
        try:
            query = self.db.query(User).filter(User.id == user_id)
            if role is not None:
                query = query.filter(User.role == role)
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to get user: {str(e)}") from e
