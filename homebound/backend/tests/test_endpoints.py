import pytest

from app.integrations.sanitize import validate_payload
from app.integrations.services.endpoints import TEST_LEAD_PAYLOAD, validate_webhook_url


def test_accepts_https_and_trims():
    assert validate_webhook_url("  https://hooks.zapier.com/hooks/catch/1/abc/ ") == "https://hooks.zapier.com/hooks/catch/1/abc/"


@pytest.mark.parametrize("url", ["", "   ", "http://hooks.zapier.com/x", "ftp://x.com", "hooks.zapier.com/x"])
def test_rejects_non_https(url):
    with pytest.raises(ValueError):
        validate_webhook_url(url)


def test_allowed_hosts_match_suffix():
    allowed = ["zapier.com"]
    assert validate_webhook_url("https://hooks.zapier.com/x", allowed)
    assert validate_webhook_url("https://zapier.com/x", allowed)
    with pytest.raises(ValueError):
        validate_webhook_url("https://evilzapier.com/x", allowed)
    with pytest.raises(ValueError):
        validate_webhook_url("https://example.com/x", allowed)


def test_canned_test_payload_is_a_valid_lead():
    validate_payload(TEST_LEAD_PAYLOAD)
