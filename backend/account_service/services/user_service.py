import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from sqlalchemy.orm import Session
from account_service.core.errors import PaymentRequired, UserNotFound
from account_service.core.security import get_password_hash
from account_service.models.user import User, UserData
from account_service.storage.credential_store import CredentialStore, credential_store

logger = logging.getLogger(__name__)


def unique_tags(tags: Iterable[str]) -> list[str]:
    """Drop duplicate tags, keeping first occurrence"""
    return list(dict.fromkeys(tags))


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserService:
    """Profile reads and updates for existing users"""

    def __init__(self, store: CredentialStore = credential_store):
        self.store = store

    def get_user_details(self, db: Session, user_id: int) -> User:
        user = self.store.get_user(db, user_id)
        if user is None:
            raise UserNotFound()
        return user

    def validate_user(self, db: Session, user_id: int, now: Optional[datetime] = None) -> User:
        """Return the user if it holds a paid subscription that has not run out"""
        user = self.get_user_details(db, user_id)
        user_data = user.user_data
        if user_data is None:
            raise UserNotFound("Payments not found")
        if user_data.paid_user is not True:
            raise PaymentRequired()

        now = now or datetime.now(timezone.utc)
        if user_data.valid_till is None or as_utc(user_data.valid_till) <= now:
            raise PaymentRequired("Time expired")
        return user

    def update_password(self, db: Session, user_id: int, password: str) -> User:
        user = self.store.update_password(db, user_id, get_password_hash(password))
        if user is None:
            raise UserNotFound()
        logger.info(f"Password updated for user {user_id}")
        return user

    def update_user_data(self, db: Session, user_id: int, data: dict[str, Any]) -> UserData:
        """
        Update paid_user, valid_till and tags_covered.

        Keys that are absent or None are left unchanged.
        """
        fields = {}
        if data.get("paid_user") is not None:
            fields["paid_user"] = bool(data["paid_user"])
        if data.get("valid_till") is not None:
            fields["valid_till"] = data["valid_till"]
        if data.get("tags_covered") is not None:
            fields["tags_covered"] = unique_tags(data["tags_covered"])

        user_data = self.store.update_user_data(db, user_id, fields)
        if user_data is None:
            raise UserNotFound()
        logger.info(f"User data updated for user {user_id}: {sorted(fields)}")
        return user_data

    def delete_user(self, db: Session, user_id: int) -> int:
        if not self.store.delete_user(db, user_id):
            raise UserNotFound()
        logger.info(f"Deleted user {user_id}")
        return user_id

    def get_rating(self, db: Session, user_id: int) -> float:
        user_data = self.store.get_user_data(db, user_id)
        if user_data is None:
            raise UserNotFound()
        return user_data.rating

    def update_rating(self, db: Session, user_id: int, rating: float) -> bool:
        user_data = self.store.update_user_data(db, user_id, {"rating": rating})
        if user_data is None:
            raise UserNotFound()
        return True


user_service = UserService()
