"""OAuth-signed HTTP requests to the miiCard service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union

import requests

from .config import MiiCardConfig
from .errors import CONNECTION_ERROR, EMPTY_RESPONSE, HTTP_ERROR, TransportError
from .oauth import Credentials, authorization_header, build_oauth_params

logger = logging.getLogger(__name__)

Timeout = Union[float, Tuple[float, float]]


class HttpResponseProtocol(Protocol):
    status_code: int
    content: bytes


class HttpClientProtocol(Protocol):
    def post(
        self,
        url: str,
        data: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[Timeout] = None,
        verify: Union[bool, str] = True,
    ) -> HttpResponseProtocol:  # pragma: no cover - protocol definition
        ...

    def get(
        self,
        url: str,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[Timeout] = None,
        verify: Union[bool, str] = True,
    ) -> HttpResponseProtocol:  # pragma: no cover - protocol definition
        ...


class RequestsHttpClient:
    """Small adapter over ``requests`` so we can mock in tests."""

    def __init__(self, session: Optional[requests.Session] = None):
        self._session = session or requests.Session()

    def post(self, url, data=None, headers=None, timeout=None, verify=True) -> requests.Response:
        return self._session.post(
            url, data=data, headers=dict(headers or {}), timeout=timeout, verify=verify
        )

    def get(self, url, params=None, headers=None, timeout=None, verify=True) -> requests.Response:
        return self._session.get(
            url, params=params, headers=dict(headers or {}), timeout=timeout, verify=verify
        )


def send(
    http_client: HttpClientProtocol,
    config: MiiCardConfig,
    method: str,
    url: str,
    **kwargs,
) -> bytes:
    """
    Perform one HTTP exchange and return the response body.

    Every call is made once; nothing is retried.

    Raises:
        TransportError: On connection/TLS failure, a non-2xx status or an
            empty body
    """
    headers = {"User-Agent": config.user_agent, "Accept": "*/*"}
    headers.update(kwargs.pop("headers", None) or {})

    logger.debug("miiCard %s %s", method, url)
    call = http_client.post if method == "POST" else http_client.get
    try:
        response = call(
            url,
            headers=headers,
            timeout=config.timeout,
            verify=config.requests_verify,
            **kwargs,
        )
    except requests.RequestException as e:
        raise TransportError(CONNECTION_ERROR, f"Request to {url} failed: {e}") from e

    if not 200 <= response.status_code < 300:
        raise TransportError(
            HTTP_ERROR,
            f"miiCard returned HTTP {response.status_code} for {url}",
            status_code=response.status_code,
        )

    body = response.content
    if not body:
        raise TransportError(
            EMPTY_RESPONSE,
            "An empty response was received from the server",
            status_code=response.status_code,
        )
    return body


class OAuthSignedRequestMaker:
    """
    Makes OAuth 1.0a-signed POST requests.

    A consumer key and secret are mandatory. The access token and secret may
    be omitted for requests that aren't signed by a token, as during the
    initial OAuth exchange.

    Example:
        >>> maker = OAuthSignedRequestMaker("key", "secret")
        >>> body = maker.make_signed_request(url, raw_body="{}")
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: Optional[str] = None,
        access_token_secret: Optional[str] = None,
        config: Optional[MiiCardConfig] = None,
        http_client: Optional[HttpClientProtocol] = None,
    ):
        self._credentials = Credentials(
            consumer_key, consumer_secret, access_token, access_token_secret
        )
        self.config = config or MiiCardConfig()
        self.http_client = http_client or RequestsHttpClient()

    @property
    def consumer_key(self) -> str:
        return self._credentials.consumer_key

    @property
    def consumer_secret(self) -> str:
        return self._credentials.consumer_secret

    @property
    def access_token(self) -> Optional[str]:
        """The OAuth access token, or None if not set."""
        return self._credentials.access_token

    @property
    def access_token_secret(self) -> Optional[str]:
        """The OAuth access token secret, or None if not set."""
        return self._credentials.access_token_secret

    @property
    def credentials(self) -> Credentials:
        """Credentials used to sign the next request."""
        return self._credentials.with_token(self.access_token, self.access_token_secret)

    def make_signed_request(
        self,
        url: str,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        raw_body: Optional[Union[str, bytes]] = None,
        credentials: Optional[Credentials] = None,
    ) -> bytes:
        """
        Make an OAuth-signed HTTP POST request.

        Two request shapes are supported. Without ``raw_body`` the OAuth
        parameters and ``params`` are sent form-encoded in the body, as during
        the token handshake. With ``raw_body`` the signature covers no body
        parameters, the OAuth parameters travel in the ``Authorization``
        header and the body is sent as-is, as for JSON API calls.

        Args:
            url: The URL to be requested
            params: Form parameters (ignored when ``raw_body`` is given)
            headers: Additional HTTP headers
            raw_body: Pre-encoded request body
            credentials: Sign with these instead of the instance's own

        Returns:
            The raw response body

        Raises:
            TransportError: If the exchange fails or returns nothing
        """
        credentials = credentials or self.credentials
        request_headers: Dict[str, str] = dict(headers or {})

        if raw_body is not None:
            oauth_params = build_oauth_params(credentials, "POST", url)
            request_headers["Authorization"] = authorization_header(oauth_params)
            request_headers.setdefault("Content-Type", "application/json")
            return send(
                self.http_client, self.config, "POST", url, data=raw_body, headers=request_headers
            )

        form_params = {k: "" if v is None else str(v) for k, v in (params or {}).items()}
        oauth_params = build_oauth_params(credentials, "POST", url, form_params)
        body = dict(form_params)
        body.update(oauth_params)
        request_headers.setdefault("Content-Type", "application/x-www-form-urlencoded")
        return send(self.http_client, self.config, "POST", url, data=body, headers=request_headers)
