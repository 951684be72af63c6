import logging
from typing import Any, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from account_service.core.errors import EmailAlreadyRegistered, PersistenceError
from account_service.models.user import User, UserData, Wishlist, Cart

logger = logging.getLogger(__name__)


class CredentialStore:
    """Durable User records and the per-user records created alongside them"""

    def create_user(
        self,
        db: Session,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str = "",
        phone: Optional[str] = None,
        oauth_id: Optional[str] = None,
        oauth_provider: Optional[str] = None,
    ) -> User:
        """
        Create a user together with its UserData, Wishlist and Cart.

        All four rows are committed in one transaction. On any failure the
        session is rolled back so no partial user is left behind.
        """
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            oauth_id=oauth_id,
            oauth_provider=oauth_provider,
        )
        try:
            db.add(user)
            # Flush to get the generated id for the dependent rows
            db.flush()
            db.add_all([
                UserData(user_id=user.id, paid_user=False, rating=0.0, tags_covered=[]),
                Wishlist(user_id=user.id),
                Cart(user_id=user.id, total_amount=0),
            ])
            db.commit()
        except IntegrityError:
            # Unique email (or OAuth identity) lost a race with another request
            db.rollback()
            raise EmailAlreadyRegistered()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not create user records: {e}")
            raise PersistenceError()

        db.refresh(user)
        return user

    def get_user(self, db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    def get_user_by_oauth_identity(self, db: Session, provider: str, oauth_id: str) -> Optional[User]:
        return db.query(User).filter(
            User.oauth_provider == provider,
            User.oauth_id == oauth_id,
        ).first()

    def update_password(self, db: Session, user_id: int, password_hash: str) -> Optional[User]:
        user = self.get_user(db, user_id)
        if user is None:
            return None
        user.password_hash = password_hash
        self._commit(db, "update password")
        db.refresh(user)
        return user

    def delete_user(self, db: Session, user_id: int) -> bool:
        """Delete a user; dependent rows go with it"""
        user = self.get_user(db, user_id)
        if user is None:
            return False
        db.delete(user)
        self._commit(db, "delete user")
        return True

    def get_user_data(self, db: Session, user_id: int) -> Optional[UserData]:
        return db.query(UserData).filter(UserData.user_id == user_id).first()

    def update_user_data(self, db: Session, user_id: int, fields: dict[str, Any]) -> Optional[UserData]:
        """Apply the given column values to a user's UserData row"""
        user_data = self.get_user_data(db, user_id)
        if user_data is None:
            return None
        for name, value in fields.items():
            setattr(user_data, name, value)
        self._commit(db, "update user data")
        db.refresh(user_data)
        return user_data

    @staticmethod
    def _commit(db: Session, action: str) -> None:
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not {action}: {e}")
            raise PersistenceError()


credential_store = CredentialStore()
