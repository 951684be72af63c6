"""
Google One-Tap ID-token verification.

The frontend posts the ``credential`` returned by Google One-Tap. It is a
Google-signed JWT; google-auth checks its signature against Google's
published certificates, its expiry and its audience (our client id).
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Optional

import google.auth.exceptions
import google.auth.transport.requests
import google.oauth2.id_token
import cachecontrol
import requests

from account_service.core.config import settings
from account_service.core.errors import InvalidAssertion, MissingEmail, ProviderUnavailable

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER = "google"


@dataclass(frozen=True)
class OAuthIdentity:
    email: str
    display_name: str
    provider_subject_id: str
    provider: str = GOOGLE_PROVIDER


class GoogleOAuthVerifier:
    """Verifies Google ID tokens for one client id"""

    def __init__(self, client_id: str):
        self.client_id = client_id
        self._session: Optional[requests.Session] = None
        # requests sessions are not documented as thread safe
        self._lock = RLock()

    @contextmanager
    def _locked_session(self):
        with self._lock:
            if self._session is None:
                # Caches Google's signing certificates per their Cache-Control headers
                self._session = cachecontrol.CacheControl(requests.Session())
            yield self._session

    def fetch_claims(self, assertion: str, audience: str) -> dict:
        """Ask google-auth to verify the assertion and return its claims"""
        with self._locked_session() as session:
            request = google.auth.transport.requests.Request(session=session)
            return google.oauth2.id_token.verify_oauth2_token(assertion, request, audience)

    def verify(self, assertion: str, expected_audience: Optional[str] = None) -> OAuthIdentity:
        if not assertion:
            raise InvalidAssertion("No credential provided")

        audience = expected_audience or self.client_id
        try:
            claims = self.fetch_claims(assertion, audience)
        except google.auth.exceptions.TransportError as e:
            # Certificates could not be fetched; the credential itself may be fine
            logger.error(f"Could not reach Google to verify credential: {e}")
            raise ProviderUnavailable()
        except (ValueError, google.auth.exceptions.GoogleAuthError) as e:
            # Bad signature, expired, wrong audience or issuer
            logger.warning(f"Google credential rejected: {e}")
            raise InvalidAssertion()

        if not claims:
            raise InvalidAssertion()

        email = claims.get("email")
        if not email:
            raise MissingEmail()

        logger.info("Google One Tap token verified successfully")
        return OAuthIdentity(
            email=email,
            display_name=claims.get("name") or "",
            provider_subject_id=claims.get("sub") or "",
        )


def get_oauth_verifier() -> GoogleOAuthVerifier:
    return _google_verifier


_google_verifier = GoogleOAuthVerifier(settings.GOOGLE_CLIENT_ID)
