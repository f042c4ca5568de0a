"""Endpoints of the miiCard OAuth service and APIs."""

from typing import Optional

# OAuth authorisation endpoint
OAUTH_ENDPOINT = "https://sts.miicard.com/auth/oauth.ashx"

# Claims API v1 JSON endpoint
CLAIMS_SVC = "https://sts.miicard.com/api/v1/Claims.svc/json"

# Financial API v1 JSON endpoint
FINANCIAL_SVC = "https://sts.miicard.com/api/v1/Financial.svc/json"

# Directory API v1 endpoint
DIRECTORY_SVC = "https://sts.miicard.com/api/v1/Members"


def method_url(base_url: str, method: str) -> str:
    """Join an API base URL and a method name."""
    return f"{base_url.rstrip('/')}/{method}"


def claims_method_url(method: str, base_url: Optional[str] = None) -> str:
    """URL of a Claims API method, e.g. ``GetClaims``."""
    return method_url(base_url or CLAIMS_SVC, method)


def financial_method_url(method: str, base_url: Optional[str] = None) -> str:
    """URL of a Financial API method, e.g. ``GetFinancialTransactions``."""
    return method_url(base_url or FINANCIAL_SVC, method)


def directory_query_params(criterion: str, value: str, hashed: bool = False) -> dict:
    """
    Query parameters for a Directory API search.

    Args:
        criterion: Field being searched on, like ``email`` or ``phone``
        value: The value sought, like ``test@example.com``
        hashed: Whether ``value`` is already a SHA-1 hash

    Returns:
        Mapping to be sent as the query string
    """
    params = {criterion: value}
    if hashed:
        params["hashed"] = "true"
    return params
