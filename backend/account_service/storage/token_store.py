import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from account_service.core.errors import PersistenceError
from account_service.models.auth_token import AuthToken

logger = logging.getLogger(__name__)


class TokenStore:
    """Durable mapping from issued token string to role"""

    def create(
        self,
        db: Session,
        token: str,
        role: str,
        expires_at: Optional[datetime] = None,
    ) -> AuthToken:
        record = AuthToken(token=token, role=role, expires_at=expires_at)
        try:
            db.add(record)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not store auth token: {e}")
            raise PersistenceError("Could not create session")
        db.refresh(record)
        return record

    def get(self, db: Session, token: str) -> Optional[AuthToken]:
        return db.query(AuthToken).filter(AuthToken.token == token).first()

    def set_role(self, db: Session, token: str, role: str) -> bool:
        """Change the role a live token grants; returns False if it is absent"""
        record = self.get(db, token)
        if record is None:
            return False
        record.role = role
        self._commit(db, "update token role")
        return True

    def delete(self, db: Session, token: str) -> bool:
        """Delete a token; returns False if there was nothing to delete"""
        try:
            deleted = db.query(AuthToken).filter(AuthToken.token == token).delete(
                synchronize_session=False
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not delete auth token: {e}")
            raise PersistenceError("Cannot logout from services")
        return deleted > 0

    def purge_expired(self, db: Session, now: datetime) -> int:
        """Delete every token whose expiry has passed"""
        try:
            deleted = db.query(AuthToken).filter(
                AuthToken.expires_at.is_not(None),
                AuthToken.expires_at <= now,
            ).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not purge expired tokens: {e}")
            raise PersistenceError()
        return deleted

    @staticmethod
    def _commit(db: Session, action: str) -> None:
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not {action}: {e}")
            raise PersistenceError()


token_store = TokenStore()
