import logging
from typing import Optional
from sqlalchemy.orm import Session
from account_service.core.errors import (
    EmailAlreadyRegistered, InvalidCredential, PersistenceError, UnknownEmail,
)
from account_service.core.security import dummy_verify_password, get_password_hash, verify_password
from account_service.storage.credential_store import CredentialStore, credential_store

logger = logging.getLogger(__name__)


def split_display_name(name: str) -> tuple[str, str]:
    """Split "First Last" into first and last name; last may be empty"""
    first_name, _, last_name = (name or "").strip().partition(" ")
    return first_name, last_name.strip()


class CredentialService:
    """Checks credentials and creates the users they belong to"""

    def __init__(self, store: CredentialStore = credential_store):
        self.store = store

    def register(
        self,
        db: Session,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
    ) -> int:
        """Create a password user and return its id"""
        logger.info("Registering a new user")
        if self.store.get_user_by_email(db, email) is not None:
            logger.warning("Registration rejected: email already registered")
            raise EmailAlreadyRegistered()

        user = self.store.create_user(
            db,
            email=email,
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        logger.info(f"User registered with id {user.id}")
        return user.id

    def verify_password(self, db: Session, email: str, password: str) -> int:
        """
        Return the id of the user owning ``email`` if ``password`` matches.

        UnknownEmail and InvalidCredential share a message; only the logs
        tell them apart.
        """
        user = self.store.get_user_by_email(db, email)
        if user is None:
            dummy_verify_password()
            logger.warning("Login failed: unknown email")
            raise UnknownEmail()

        if not verify_password(password, user.password_hash):
            logger.warning(f"Login failed: wrong password for user {user.id}")
            raise InvalidCredential()

        return user.id

    def provision_or_find_oauth_user(
        self,
        db: Session,
        *,
        email: str,
        name: str,
        provider_subject_id: str,
        provider: str,
    ) -> int:
        """
        Return the id of the user with ``email``, creating it on first login.

        An existing user is returned untouched, whatever its profile says.
        A provider account whose email changed is matched by its subject id.
        """
        user = self._find_oauth_user(db, email, provider, provider_subject_id)
        if user is not None:
            return user.id

        first_name, last_name = split_display_name(name)
        try:
            user = self.store.create_user(
                db,
                email=email,
                password_hash="",
                first_name=first_name,
                last_name=last_name,
                oauth_id=provider_subject_id or None,
                oauth_provider=provider,
            )
        except EmailAlreadyRegistered:
            # A concurrent first login created the user; use that one
            user = self._find_oauth_user(db, email, provider, provider_subject_id)
            if user is None:
                logger.error(f"{provider} identity conflicts with an existing user but none matches")
                raise PersistenceError("Could not create account")
            return user.id

        logger.info(f"Provisioned {provider} user {user.id}")
        return user.id

    def _find_oauth_user(self, db: Session, email: str, provider: str, provider_subject_id: str):
        user = self.store.get_user_by_email(db, email)
        if user is not None or not provider_subject_id:
            return user
        user = self.store.get_user_by_oauth_identity(db, provider, provider_subject_id)
        if user is not None:
            logger.warning(f"{provider} identity of user {user.id} now reports a different email")
        return user


credential_service = CredentialService()
