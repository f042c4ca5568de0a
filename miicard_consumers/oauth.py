"""OAuth 1.0a request signing (RFC 5849) with HMAC-SHA1."""

import base64
import time
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, quote, urlsplit, urlunsplit

from cryptography.hazmat.primitives import hashes, hmac

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Credentials:
    """
    OAuth consumer credentials and, once known, the token pair.

    Example:
        >>> creds = Credentials("key", "secret")
        >>> creds.has_access_token
        False
    """

    consumer_key: str
    consumer_secret: str
    access_token: Optional[str] = None
    access_token_secret: Optional[str] = None

    def __post_init__(self):
        if not self.consumer_key:
            raise ValueError("consumer_key cannot be empty")
        if not self.consumer_secret:
            raise ValueError("consumer_secret cannot be empty")

    @property
    def has_access_token(self) -> bool:
        """Whether both halves of the token pair are present."""
        return bool(self.access_token) and bool(self.access_token_secret)

    def with_token(self, token: Optional[str], secret: Optional[str]) -> "Credentials":
        """Copy of these credentials carrying a different token pair."""
        return Credentials(self.consumer_key, self.consumer_secret, token, secret)


def percent_encode(value) -> str:
    """Percent-encode a value per RFC 3986, leaving only unreserved characters."""
    if value is None:
        value = ""
    return quote(str(value), safe="~")


def normalize_url(url: str) -> str:
    """
    Normalise a URL for use in a signature base string.

    Scheme and host are lower-cased, default ports dropped and the query
    string and fragment removed.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if parts.port and parts.port != _DEFAULT_PORTS.get(scheme):
        host = f"{host}:{parts.port}"
    path = parts.path or "/"
    return urlunsplit((scheme, host, path, "", ""))


def normalize_parameters(params: Iterable[Tuple[str, str]]) -> str:
    """Encode, sort and join request parameters (RFC 5849 section 3.4.1.3.2)."""
    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


def signature_base_string(method: str, url: str, params: Iterable[Tuple[str, str]]) -> str:
    """
    Build the signature base string for a request.

    Args:
        method: HTTP method (e.g., "POST")
        url: Request URL; any query-string parameters are signed too
        params: Request parameters including the ``oauth_*`` set,
            excluding ``oauth_signature``

    Returns:
        The base string ``METHOD&url&params``
    """
    all_params = list(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    all_params.extend((k, v) for k, v in params if k != "oauth_signature")

    return "&".join(
        [
            method.upper(),
            percent_encode(normalize_url(url)),
            percent_encode(normalize_parameters(all_params)),
        ]
    )


def sign_hmac_sha1(base_string: str, consumer_secret: str, token_secret: Optional[str] = None) -> str:
    """
    Sign a base string with HMAC-SHA1.

    Args:
        base_string: Output of signature_base_string
        consumer_secret: The OAuth consumer secret
        token_secret: The request or access token secret, if any

    Returns:
        Base64-encoded signature
    """
    key = f"{percent_encode(consumer_secret)}&{percent_encode(token_secret or '')}"
    mac = hmac.HMAC(key.encode(), hashes.SHA1())
    mac.update(base_string.encode())
    return base64.b64encode(mac.finalize()).decode("ascii")


def build_oauth_params(
    credentials: Credentials,
    method: str,
    url: str,
    params: Optional[Mapping[str, str]] = None,
    nonce: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> Dict[str, str]:
    """
    Create the signed ``oauth_*`` parameter set for a request.

    The token is only included when both halves of the pair are known; a
    request token held in ``access_token`` signs the verifier exchange.

    Args:
        credentials: Consumer credentials and optional token pair
        method: HTTP method
        url: Target URL
        params: Additional parameters that take part in the signature
        nonce: Fixed nonce, for tests
        timestamp: Fixed timestamp, for tests

    Returns:
        The OAuth parameters including ``oauth_signature``
    """
    oauth_params = {
        "oauth_consumer_key": credentials.consumer_key,
        "oauth_nonce": nonce or uuid.uuid4().hex,
        "oauth_signature_method": SIGNATURE_METHOD,
        "oauth_timestamp": str(timestamp if timestamp is not None else int(time.time())),
        "oauth_version": OAUTH_VERSION,
    }
    token_secret = None
    if credentials.has_access_token:
        oauth_params["oauth_token"] = credentials.access_token
        token_secret = credentials.access_token_secret

    signed: List[Tuple[str, str]] = list(oauth_params.items())
    if params:
        signed.extend((k, "" if v is None else str(v)) for k, v in params.items())

    base_string = signature_base_string(method, url, signed)
    oauth_params["oauth_signature"] = sign_hmac_sha1(
        base_string, credentials.consumer_secret, token_secret
    )
    return oauth_params


def authorization_header(oauth_params: Mapping[str, str], realm: Optional[str] = None) -> str:
    """Render OAuth parameters as an ``Authorization`` header value."""
    parts = []
    if realm is not None:
        parts.append(f'realm="{percent_encode(realm)}"')
    for key in sorted(oauth_params):
        if key.startswith("oauth_"):
            parts.append(f'{percent_encode(key)}="{percent_encode(oauth_params[key])}"')
    return "OAuth " + ", ".join(parts)
