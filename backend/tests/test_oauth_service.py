from unittest.mock import patch

import google.auth.exceptions
import pytest
from cachecontrol.adapter import CacheControlAdapter

from account_service.core.errors import InvalidAssertion, MissingEmail, ProviderUnavailable
from account_service.services.oauth_service import GOOGLE_PROVIDER, GoogleOAuthVerifier

CLIENT_ID = "client-123.apps.googleusercontent.com"
VERIFY = "google.oauth2.id_token.verify_oauth2_token"


@pytest.fixture
def verifier():
    return GoogleOAuthVerifier(CLIENT_ID)


def test_valid_assertion(verifier):
    claims = {"email": "b@x.com", "name": "Bea Example", "sub": "1234"}
    with patch(VERIFY, return_value=claims) as verify:
        identity = verifier.verify("id-token")

    assert identity.email == "b@x.com"
    assert identity.display_name == "Bea Example"
    assert identity.provider_subject_id == "1234"
    assert identity.provider == GOOGLE_PROVIDER
    token, _, audience = verify.call_args.args
    assert token == "id-token"
    assert audience == CLIENT_ID


def test_expected_audience_overrides_client_id(verifier):
    with patch(VERIFY, return_value={"email": "b@x.com"}) as verify:
        verifier.verify("id-token", "other-audience")
    assert verify.call_args.args[2] == "other-audience"


def test_missing_name_and_subject_default_to_empty(verifier):
    with patch(VERIFY, return_value={"email": "b@x.com"}):
        identity = verifier.verify("id-token")
    assert identity.display_name == ""
    assert identity.provider_subject_id == ""


@pytest.mark.parametrize("error", [
    ValueError("Token expired"),
    ValueError("Token has wrong audience"),
    ValueError("Could not verify token signature."),
])
def test_rejected_assertion(verifier, error):
    with patch(VERIFY, side_effect=error):
        with pytest.raises(InvalidAssertion):
            verifier.verify("id-token")


def test_missing_email(verifier):
    with patch(VERIFY, return_value={"sub": "1234"}):
        with pytest.raises(MissingEmail):
            verifier.verify("id-token")


def test_empty_assertion_is_not_sent_to_google(verifier):
    with patch(VERIFY) as verify:
        with pytest.raises(InvalidAssertion):
            verifier.verify("")
    verify.assert_not_called()


def test_google_unreachable_is_not_the_callers_fault(verifier):
    outage = google.auth.exceptions.TransportError("Connection refused")
    with patch(VERIFY, side_effect=outage):
        with pytest.raises(ProviderUnavailable) as exc_info:
            verifier.verify("id-token")
    assert exc_info.value.http_status == 500


def test_certificate_session_is_cached_and_reused(verifier):
    with verifier._locked_session() as first:
        assert isinstance(first.get_adapter("https://www.googleapis.com/oauth2/v1/certs"), CacheControlAdapter)
    with verifier._locked_session() as second:
        assert second is first
