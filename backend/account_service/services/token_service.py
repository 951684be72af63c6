import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy.orm import Session
from account_service.core.config import settings
from account_service.core.errors import InvalidToken, TokenNotFound
from account_service.core.security import create_token, decode_token
from account_service.storage.token_store import TokenStore, token_store

logger = logging.getLogger(__name__)

USER_ROLE = "User"
ADMIN_ROLE = "Admin"


@dataclass(frozen=True)
class ResolvedToken:
    subject_id: int
    role: str


class TokenService:
    """
    Issues, resolves and revokes session tokens.

    A token is a signed JWT whose ``sub`` claim is the user id. The Token
    Store holds one row per live token with the role it grants; the role in
    the store is authoritative, so changing it takes effect without
    reissuing the token.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: Optional[int] = None,
        store: TokenStore = token_store,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = timedelta(minutes=expire_minutes) if expire_minutes else None
        self.store = store

    def issue(self, db: Session, subject_id: int, role: str = USER_ROLE) -> str:
        """Mint a token for ``subject_id`` and persist it with ``role``"""
        token, expires_at = create_token(
            str(subject_id), self.secret_key, self.algorithm, self.expires_delta
        )
        # PersistenceError propagates: the caller must not treat the user as logged in
        self.store.create(db, token, role, expires_at)
        logger.info(f"Issued {role} token for user {subject_id}")
        return token

    def resolve(self, db: Session, token: str) -> ResolvedToken:
        """Return the subject and role behind a live token"""
        payload = decode_token(token, self.secret_key, self.algorithm) if token else None
        if payload is None:
            raise InvalidToken()

        try:
            subject_id = int(payload.get("sub"))
        except (ValueError, TypeError):
            raise InvalidToken()

        record = self.store.get(db, token)
        if record is None:
            raise TokenNotFound()

        return ResolvedToken(subject_id=subject_id, role=record.role)

    def revoke(self, db: Session, token: str) -> bool:
        """
        Delete a token from the store.

        Returns False when the token was already absent, which callers
        treat as already logged out.
        """
        deleted = self.store.delete(db, token)
        if not deleted:
            logger.info("Revoke requested for a token that is already absent")
        return deleted

    def purge_expired(self, db: Session) -> int:
        return self.store.purge_expired(db, datetime.now(timezone.utc))


def get_token_service() -> TokenService:
    """Dependency building the token service from settings"""
    return TokenService(
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expire_minutes=settings.TOKEN_EXPIRE_MINUTES,
    )
