# app/users/repository.py

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.users.models import User


class UserRepository:
    """
    Data Access Layer for the User model.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Fetch a user by email address, ignoring case."""
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return self.db.execute(stmt).scalar_one_or_none()

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Fetch a user by ID."""
        return self.db.get(User, user_id)
