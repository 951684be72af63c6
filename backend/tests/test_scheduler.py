from datetime import datetime, timedelta, timezone

from account_service.core.scheduler import purge_expired_tokens_job
from account_service.models.auth_token import AuthToken
from account_service.services.token_service import USER_ROLE
from account_service.storage.token_store import token_store


def test_purge_job_deletes_expired_tokens(db, session_factory):
    now = datetime.now(timezone.utc)
    token_store.create(db, "old", USER_ROLE, expires_at=now - timedelta(minutes=1))
    token_store.create(db, "live", USER_ROLE, expires_at=now + timedelta(minutes=1))

    assert purge_expired_tokens_job(session_factory) == 1
    assert [row.token for row in db.query(AuthToken).all()] == ["live"]


def test_purge_job_with_nothing_to_do(session_factory):
    assert purge_expired_tokens_job(session_factory) == 0
