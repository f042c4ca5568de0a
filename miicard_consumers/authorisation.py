"""The miiCard OAuth 1.0a authorisation flow."""

import html
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Protocol, Tuple
from urllib.parse import parse_qsl, urlencode

from .config import MiiCardConfig
from .errors import (
    EMPTY_RESPONSE,
    INVALID_RESPONSE,
    NO_ACCESS_TOKEN,
    NO_REQUEST_TOKEN,
    NO_TOKEN,
    AuthorisationError,
    MiiCardError,
    TransportError,
)
from .model import UserProfile
from .services import ClaimsService
from .transport import HttpClientProtocol, OAuthSignedRequestMaker

logger = logging.getLogger(__name__)

SESSION_KEY_REQUEST_TOKEN = "miiCard.OAuth.InProgress.RequestToken"
SESSION_KEY_REQUEST_TOKEN_SECRET = "miiCard.OAuth.InProgress.RequestTokenSecret"
SESSION_KEY_ACCESS_TOKEN = "miiCard.OAuth.AccessToken"
SESSION_KEY_ACCESS_TOKEN_SECRET = "miiCard.OAuth.AccessTokenSecret"

_SESSION_KEYS = (
    SESSION_KEY_REQUEST_TOKEN,
    SESSION_KEY_REQUEST_TOKEN_SECRET,
    SESSION_KEY_ACCESS_TOKEN,
    SESSION_KEY_ACCESS_TOKEN_SECRET,
)


class SessionStore(Protocol):
    """Per-user key/value storage provided by the host application."""

    def get(self, key: str) -> Optional[str]:  # pragma: no cover - protocol definition
        ...

    def set(self, key: str, value: Optional[str]) -> None:  # pragma: no cover - protocol definition
        ...

    def clear(self, key: str) -> None:  # pragma: no cover - protocol definition
        ...


class MemorySessionStore:
    """Dictionary-backed session store, seeded from any existing data."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self.clear(key)
        else:
            self._data[key] = value

    def clear(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def to_dict(self) -> Dict[str, str]:
        return dict(self._data)


@dataclass(frozen=True)
class RedirectResult:
    """
    Response the host must send to bounce the browser to miiCard.

    The bounce is a meta-refresh page rather than an HTTP 302 so that a
    session cookie created during this request still reaches the browser.
    Nothing else should be written to the response.
    """

    location: str
    body: str
    status_code: int = 200

    @property
    def headers(self) -> Dict[str, str]:
        return {"Content-Type": "text/html; charset=utf-8", "Location": self.location}

    @classmethod
    def bounce(cls, location: str) -> "RedirectResult":
        url = html.escape(location, quote=True)
        body = (
            f'<html><head><meta http-equiv="refresh" content="0;url={url}">'
            "<title>Redirecting to miiCard.com</title></head>"
            "<body>You should be redirected automatically - if not, "
            f'<a href="{url}">click here</a>.</body></html>'
        )
        return cls(location=location, body=body)


class AuthorisationState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    REQUEST_TOKEN_OBTAINED = "request_token_obtained"
    CALLBACK_RECEIVED = "callback_received"
    AUTHORISED = "authorised"
    AUTHORISATION_FAILED = "authorisation_failed"


def _parse_token_reply(body: bytes) -> Dict[str, str]:
    return dict(parse_qsl(body.decode("utf-8").strip(), keep_blank_values=True))


class MiiCard(OAuthSignedRequestMaker):
    """
    Drives the three-legged OAuth exchange with miiCard.

    Example:
        >>> miicard = MiiCard(key, secret, session=session)
        >>> if miicard.is_authorisation_callback(request.args):
        ...     miicard.handle_authorisation_callback(request.args)
        ...     if miicard.is_authorisation_success():
        ...         store(miicard.access_token, miicard.access_token_secret)
        ... else:
        ...     return miicard.begin_authorisation(callback_url)
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: Optional[str] = None,
        access_token_secret: Optional[str] = None,
        callback_url: Optional[str] = None,
        referrer_code: Optional[str] = None,
        force_claims_picker: bool = False,
        signup_mode: bool = False,
        session: Optional[SessionStore] = None,
        config: Optional[MiiCardConfig] = None,
        http_client: Optional[HttpClientProtocol] = None,
    ):
        """
        Create the flow controller.

        Args:
            consumer_key: The OAuth consumer key issued by miiCard
            consumer_secret: The OAuth consumer secret issued by miiCard
            access_token: A previously obtained access token, if any
            access_token_secret: A previously obtained access token secret
            callback_url: Where miiCard returns the member once they approve
            referrer_code: Your referrer code, if you have one
            force_claims_picker: Make the member re-select what to share
            signup_mode: Send the member to the signup page first
            session: Session storage for the in-flight tokens
            config: Endpoints, timeouts and TLS settings
            http_client: HTTP client, for tests
        """
        super().__init__(
            consumer_key,
            consumer_secret,
            access_token,
            access_token_secret,
            config=config,
            http_client=http_client,
        )
        self.callback_url = callback_url
        self.referrer_code = referrer_code
        self.force_claims_picker = bool(force_claims_picker)
        self.signup_mode = bool(signup_mode)
        self._session = session
        self._state = (
            AuthorisationState.AUTHORISED
            if self._credentials.has_access_token
            else AuthorisationState.UNAUTHENTICATED
        )

    @property
    def state(self) -> AuthorisationState:
        return self._state

    @property
    def session(self) -> Optional[SessionStore]:
        return self._session

    @property
    def access_token(self) -> Optional[str]:
        """The access token, falling back to the one kept in the session."""
        token = self._credentials.access_token
        if token is None and self._session is not None:
            token = self._session.get(SESSION_KEY_ACCESS_TOKEN)
        return token

    @property
    def access_token_secret(self) -> Optional[str]:
        secret = self._credentials.access_token_secret
        if secret is None and self._session is not None:
            secret = self._session.get(SESSION_KEY_ACCESS_TOKEN_SECRET)
        return secret

    def begin_authorisation(self, callback_url: Optional[str] = None) -> RedirectResult:
        """
        Start an OAuth authorisation.

        Clears any stored tokens, obtains a fresh request token and returns
        the redirect that sends the member to miiCard. The host should send
        the result and end the request.

        The callback URL is never inferred from the current request; the host
        must supply it here or at construction.

        Args:
            callback_url: Overrides the callback URL given at construction

        Returns:
            The redirect to the miiCard authorisation page

        Raises:
            ValueError: If no callback URL is known
            AuthorisationError: If miiCard does not issue a request token
            TransportError: If the exchange with miiCard fails
        """
        if callback_url is not None:
            self.callback_url = callback_url
        if not self.callback_url:
            raise ValueError("callback_url is required to begin authorisation")

        self._ensure_session_available()
        self.clear_miicard()
        self._credentials = self._credentials.with_token(None, None)
        self._state = AuthorisationState.UNAUTHENTICATED

        request_token, request_token_secret = self._get_request_token()

        self._session.set(SESSION_KEY_REQUEST_TOKEN, request_token)
        self._session.set(SESSION_KEY_REQUEST_TOKEN_SECRET, request_token_secret)
        self._state = AuthorisationState.REQUEST_TOKEN_OBTAINED
        logger.info("Obtained miiCard request token, redirecting to authorisation page")

        return RedirectResult.bounce(self.authorisation_url(request_token))

    def authorisation_url(self, request_token: str) -> str:
        """URL of the miiCard page where the member approves the request token."""
        query = [("oauth_token", request_token)]
        if self.referrer_code:
            query.append(("referrer", self.referrer_code))
        if self.force_claims_picker:
            query.append(("force_claims", "true"))
        if self.signup_mode:
            query.append(("signup", "true"))
        return f"{self.config.oauth_endpoint}?{urlencode(query)}"

    def is_authorisation_callback(self, params: Mapping[str, str]) -> bool:
        """Whether the inbound request parameters are an OAuth callback."""
        return params.get("oauth_verifier") is not None

    def handle_authorisation_callback(self, params: Mapping[str, str]) -> None:
        """
        Exchange the verifier in an OAuth callback for an access token.

        An incomplete callback (no token or verifier) is ignored. Check
        is_authorisation_success afterwards.

        Args:
            params: Query parameters of the inbound callback request

        Raises:
            AuthorisationError: If the exchange yields no access token
            TransportError: If the exchange with miiCard fails
        """
        self._ensure_session_available()

        token = params.get("oauth_token") or ""
        verifier = params.get("oauth_verifier") or ""
        if not token or not verifier:
            logger.debug("Ignoring incomplete miiCard callback")
            return

        self._state = AuthorisationState.CALLBACK_RECEIVED
        access_token, access_token_secret = self._process_access_token(token, verifier)

        self._credentials = self._credentials.with_token(access_token, access_token_secret)
        self._session.set(SESSION_KEY_ACCESS_TOKEN, access_token)
        self._session.set(SESSION_KEY_ACCESS_TOKEN_SECRET, access_token_secret)
        self._session.clear(SESSION_KEY_REQUEST_TOKEN)
        self._session.clear(SESSION_KEY_REQUEST_TOKEN_SECRET)
        self._state = AuthorisationState.AUTHORISED
        logger.info("miiCard authorisation succeeded")

    def is_authorisation_success(self) -> bool:
        """Whether both the access token and its secret are known."""
        return bool(self.access_token) and bool(self.access_token_secret)

    def get_user_profile(self) -> Optional[UserProfile]:
        """
        Get the claims the member chose to share.

        A convenience; building a ClaimsService is preferred.

        Returns:
            The profile, or None if the API call failed

        Raises:
            MiiCardError: If no access token is known
        """
        if not self.is_authorisation_success():
            raise MiiCardError(
                NO_ACCESS_TOKEN,
                "You must set the access token and access token secret to make calls into the miiCard API",
            )

        api = ClaimsService(
            self.consumer_key,
            self.consumer_secret,
            self.access_token,
            self.access_token_secret,
            config=self.config,
            http_client=self.http_client,
        )
        response = api.get_claims()
        if response.is_success:
            return response.data
        return None

    def clear_miicard(self) -> None:
        """Remove any OAuth tokens kept in the session."""
        if self._session is None:
            return
        for key in _SESSION_KEYS:
            self._session.clear(key)

    def _get_request_token(self) -> Tuple[str, str]:
        """Obtain a request token, signed by the consumer credentials only."""
        body = self.make_signed_request(
            self.config.oauth_endpoint,
            {"oauth_callback": self.callback_url},
            credentials=self._credentials.with_token(None, None),
        )
        return self._read_token_pair(
            body, "request token", "No token received from OAuth service - check credentials"
        )

    def _process_access_token(self, callback_token: str, verifier: str) -> Tuple[str, str]:
        """Convert the authorised request token into an access token."""
        request_token = self._session.get(SESSION_KEY_REQUEST_TOKEN)
        request_token_secret = self._session.get(SESSION_KEY_REQUEST_TOKEN_SECRET)
        if not request_token or not request_token_secret:
            self._state = AuthorisationState.AUTHORISATION_FAILED
            raise AuthorisationError(NO_REQUEST_TOKEN, "No request token in session - restart authorisation")
        if request_token != callback_token:
            logger.warning("miiCard callback token does not match the stored request token")

        try:
            body = self.make_signed_request(
                self.config.oauth_endpoint,
                {"oauth_verifier": verifier},
                credentials=self._credentials.with_token(request_token, request_token_secret),
            )
        except TransportError as e:
            if e.code != EMPTY_RESPONSE:
                raise
            self._state = AuthorisationState.AUTHORISATION_FAILED
            raise AuthorisationError(EMPTY_RESPONSE, "Nothing received from miiCard") from e

        return self._read_token_pair(body, "access token", "No access token received from miiCard")

    def _read_token_pair(self, body: bytes, kind: str, missing_message: str) -> Tuple[str, str]:
        """
        Extract ``oauth_token`` and ``oauth_token_secret`` from a handshake reply.

        Both halves must be present and non-empty; anything less fails the
        authorisation.
        """
        try:
            token = _parse_token_reply(body)
        except UnicodeDecodeError as e:
            logger.warning("miiCard %s reply was not valid UTF-8", kind)
            self._state = AuthorisationState.AUTHORISATION_FAILED
            raise AuthorisationError(INVALID_RESPONSE, f"Malformed {kind} reply from miiCard") from e

        if not token.get("oauth_token") or not token.get("oauth_token_secret"):
            logger.warning("miiCard %s reply had no token pair", kind)
            self._state = AuthorisationState.AUTHORISATION_FAILED
            raise AuthorisationError(NO_TOKEN, missing_message)
        return token["oauth_token"], token["oauth_token_secret"]

    def _ensure_session_available(self) -> None:
        if self._session is None:
            logger.debug("No session supplied, using an in-memory session")
            self._session = MemorySessionStore()
