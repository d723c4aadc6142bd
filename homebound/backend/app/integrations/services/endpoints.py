from __future__ import annotations

from urllib.parse import urlparse

# Sent by the "test webhook" action so receivers can map fields before live data arrives.
TEST_LEAD_PAYLOAD: dict[str, str] = {
    "source_id": "test_webhook",
    "borrower_first_name": "Test",
    "borrower_last_name": "User",
    "borrower_email": "test@example.com",
    "borrower_phone": "555-123-4567",
    "borrower_date_of_birth": "1990-01-01",
    "borrower_address": "123 Test St",
    "borrower_city": "Test City",
    "borrower_state": "CA",
    "borrower_postal_code": "12345",
    "property_value": "500000",
    "property_type": "SINGLE_FAMILY_DETACHED",
    "property_occupancy": "PrimaryResidence",
    "current_mortgage_balance": "300000",
    "current_interest_rate": "6.5",
    "refinance_type": "Rate and Term",
    "credit_score_range": "720-739",
    "annual_income": "100000",
    "monthly_debt_payments": "2000",
}


def validate_webhook_url(url: str, allowed_hosts: list[str] | None = None) -> str:
    """
    Returns the trimmed URL or raises ValueError.
    Requires https; when allowed_hosts is given the host must equal or end
    with one of them (e.g. "zapier.com" admits hooks.zapier.com).
    """
    u = (url or "").strip()
    if not u:
        raise ValueError("Webhook URL is required")

    parsed = urlparse(u)
    if parsed.scheme != "https" or not parsed.hostname:
        raise ValueError("Webhook URL must be an https:// URL")

    if allowed_hosts:
        host = parsed.hostname.lower()
        if not any(host == h or host.endswith("." + h) for h in allowed_hosts):
            raise ValueError(f"Webhook host must be one of: {', '.join(allowed_hosts)}")

    return u
