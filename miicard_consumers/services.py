"""Wrappers around the miiCard Claims, Financial and Directory APIs."""

import hashlib
import json
import logging
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from .config import MiiCardConfig
from .errors import INVALID_RESPONSE, MiiCardError
from .model import (
    ApiResponse,
    AuthenticationDetails,
    FinancialData,
    FinancialRefreshStatus,
    IdentitySnapshot,
    IdentitySnapshotDetails,
    PayloadType,
    UserProfile,
)
from .transport import HttpClientProtocol, OAuthSignedRequestMaker, RequestsHttpClient, send
from .urls import claims_method_url, directory_query_params, financial_method_url

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


def _decode_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except ValueError as e:
        raise MiiCardError(INVALID_RESPONSE, f"Response was not valid JSON: {e}") from e


class OAuthServiceBase(OAuthSignedRequestMaker):
    """
    Base class for wrappers around an OAuth-protected API.

    All four OAuth values are required; a missing one raises ValueError
    before any request is made.
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        access_token_secret: str,
        config: Optional[MiiCardConfig] = None,
        http_client: Optional[HttpClientProtocol] = None,
    ):
        if not access_token:
            raise ValueError("access_token cannot be empty")
        if not access_token_secret:
            raise ValueError("access_token_secret cannot be empty")
        super().__init__(
            consumer_key,
            consumer_secret,
            access_token,
            access_token_secret,
            config=config,
            http_client=http_client,
        )

    def method_url(self, method_name: str) -> str:
        """URL of an API method."""
        raise NotImplementedError

    def make_request(
        self,
        method_name: str,
        post_data: Optional[Mapping[str, Any]],
        payload_type: PayloadType,
        wrapped_response: bool,
        is_array_payload: bool = False,
    ) -> Union[ApiResponse, bytes]:
        """
        Make a signed request to an API method.

        Args:
            method_name: Name of the remote method, e.g. ``GetClaims``
            post_data: Parameters to JSON-encode into the body, if any
            payload_type: Shape of the ``Data`` member of the response
            wrapped_response: Whether the response is an ApiResponse
                envelope (True) or a raw stream such as an image (False)
            is_array_payload: Whether ``Data`` is a list of like objects

        Returns:
            The response envelope, or the raw body for unwrapped methods

        Raises:
            TransportError: If the exchange fails or returns nothing
            MiiCardError: If a wrapped response is not a JSON object
        """
        body = json.dumps(post_data) if post_data is not None else ""
        response = self.make_signed_request(
            self.method_url(method_name), headers=JSON_HEADERS, raw_body=body
        )
        if not wrapped_response:
            return response

        result = ApiResponse.from_hash(_decode_json(response), payload_type, is_array_payload)
        if result is None:
            raise MiiCardError(INVALID_RESPONSE, f"{method_name} did not return a JSON object")
        if not result.is_success:
            logger.info("%s failed with error code %s", method_name, result.error_code)
        return result


class ClaimsService(OAuthServiceBase):
    """
    Wrapper around the miiCard Claims API v1.

    Example:
        >>> api = ClaimsService(key, secret, token, token_secret)
        >>> response = api.get_claims()
        >>> if response.is_success:
        ...     print(response.data.first_name)
    """

    def method_url(self, method_name: str) -> str:
        return claims_method_url(method_name, self.config.claims_url)

    def get_claims(self) -> ApiResponse[UserProfile]:
        """Get the claims the member has shared with your application."""
        return self.make_request("GetClaims", None, PayloadType.USER_PROFILE, True)

    def is_social_account_assured(
        self, social_account_id: str, social_account_type: str
    ) -> ApiResponse[bool]:
        """
        Get whether the member owns a particular social media account.

        Args:
            social_account_id: ID of the user on the social network, as
                supplied by that network
            social_account_type: The network, e.g. ``Twitter``
        """
        request = {
            "socialAccountId": social_account_id,
            "socialAccountType": social_account_type,
        }
        return self.make_request("IsSocialAccountAssured", request, PayloadType.RAW, True)

    def is_user_assured(self) -> ApiResponse[bool]:
        """Get whether the member's identity has been assured by miiCard."""
        return self.make_request("IsUserAssured", None, PayloadType.RAW, True)

    def assurance_image(self, image_type: str) -> bytes:
        """
        Get an image representing the member's identity status.

        Args:
            image_type: One of ``banner``, ``badge-small`` or ``badge``
        """
        return self.make_request("AssuranceImage", {"type": image_type}, PayloadType.RAW, False)

    def get_card_image(
        self,
        snapshot_id: Optional[str] = None,
        show_email_address: bool = False,
        show_phone_number: bool = False,
        format: Optional[str] = None,
    ) -> bytes:
        """
        Get a card image representing the member's identity status.

        Args:
            snapshot_id: Render from this snapshot (transactional model)
            show_email_address: Show the member's email address
            show_phone_number: Show the member's phone number
            format: ``card`` (the default) or ``signature``
        """
        request = {
            "SnapshotId": snapshot_id,
            "ShowEmailAddress": show_email_address,
            "ShowPhoneNumber": show_phone_number,
            "Format": format,
        }
        return self.make_request("GetCardImage", request, PayloadType.RAW, False)

    def get_identity_snapshot_details(
        self, snapshot_id: Optional[str] = None
    ) -> ApiResponse[List[IdentitySnapshotDetails]]:
        """
        Get details of snapshots matching an ID.

        Without an ID, details of every snapshot your application has taken
        of the member are returned.
        """
        return self.make_request(
            "GetIdentitySnapshotDetails",
            {"snapshotId": snapshot_id},
            PayloadType.IDENTITY_SNAPSHOT_DETAILS,
            True,
            is_array_payload=True,
        )

    def get_identity_snapshot(self, snapshot_id: str) -> ApiResponse[IdentitySnapshot]:
        return self.make_request(
            "GetIdentitySnapshot",
            {"snapshotId": snapshot_id},
            PayloadType.IDENTITY_SNAPSHOT,
            True,
        )

    def get_authentication_details(
        self, snapshot_id: Optional[str] = None
    ) -> ApiResponse[AuthenticationDetails]:
        """
        Get details of how the member authenticated when authorising.

        Without an ID the most recent authentication for your application
        is used.
        """
        return self.make_request(
            "GetAuthenticationDetails",
            {"snapshotId": snapshot_id},
            PayloadType.AUTHENTICATION_DETAILS,
            True,
        )

    def get_identity_snapshot_pdf(self, snapshot_id: str) -> bytes:
        """Get a PDF rendering of an identity snapshot."""
        return self.make_request(
            "GetIdentitySnapshotPdf", {"snapshotId": snapshot_id}, PayloadType.RAW, False
        )


class FinancialService(OAuthServiceBase):
    """
    Wrapper around the miiCard Financial API v1.

    Callers should poll is_refresh_in_progress after refresh_financial_data
    until it reports False, at which point get_financial_transactions returns
    the most recently available data.
    """

    def method_url(self, method_name: str) -> str:
        return financial_method_url(method_name, self.config.financial_url)

    def is_refresh_in_progress(self) -> ApiResponse[bool]:
        return self.make_request("IsRefreshInProgress", None, PayloadType.RAW, True)

    def is_refresh_in_progress_credit_cards(self) -> ApiResponse[bool]:
        return self.make_request("IsRefreshInProgressCreditCards", None, PayloadType.RAW, True)

    def refresh_financial_data(self) -> ApiResponse[FinancialRefreshStatus]:
        """Request that the member's financial data be updated where possible."""
        return self.make_request(
            "RefreshFinancialData", None, PayloadType.FINANCIAL_REFRESH_STATUS, True
        )

    def refresh_financial_data_credit_cards(self) -> ApiResponse[FinancialRefreshStatus]:
        return self.make_request(
            "RefreshFinancialDataCreditCards", None, PayloadType.FINANCIAL_REFRESH_STATUS, True
        )

    def get_financial_transactions(self) -> ApiResponse[FinancialData]:
        """Get the financial data the member agreed to share, if any."""
        return self.make_request("GetFinancialTransactions", None, PayloadType.FINANCIAL_DATA, True)

    def get_financial_transactions_credit_cards(self) -> ApiResponse[FinancialData]:
        return self.make_request(
            "GetFinancialTransactionsCreditCards", None, PayloadType.FINANCIAL_DATA, True
        )


class Criterion(str, Enum):
    """Fields the Directory API can search on."""

    USERNAME = "username"
    EMAIL = "email"
    PHONE = "phone"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    GOOGLE = "google"
    MICROSOFT_ID = "liveid"
    EBAY = "ebay"
    VERITAS_VITAE = "veritasvitae"


def hash_identifier(identifier: str) -> str:
    """
    Hash an identifier for a privacy-preserving Directory search.

    The identifier is lower-cased but not otherwise normalised, so the hash
    must exactly match what the server expects; unhashed searches allow the
    server more leeway.

    Returns:
        40-character hex SHA-1 digest
    """
    return hashlib.sha1(identifier.lower().encode("utf-8")).hexdigest()


class DirectoryService:
    """
    Wrapper around the miiCard Directory API v1.

    Unlike the other wrappers the response envelope is unwrapped: a search
    returns the matching profile, or None when nothing matched.
    """

    def __init__(
        self,
        config: Optional[MiiCardConfig] = None,
        http_client: Optional[HttpClientProtocol] = None,
    ):
        self.config = config or MiiCardConfig()
        self.http_client = http_client or RequestsHttpClient()

    def find_by(
        self, criterion: Union[Criterion, str], value: str, hashed: bool = False
    ) -> Optional[UserProfile]:
        """
        Find a member by a piece of data published to their profile.

        Criterion names the server does not recognise are still sent; the
        server answers UNKNOWN_SEARCH_CRITERION and no profile is returned.

        Args:
            criterion: The field being searched on
            value: The value sought
            hashed: Whether ``value`` has been hashed with hash_identifier

        Returns:
            The member's public profile, or None if there was no match

        Raises:
            ValueError: If ``criterion`` is empty
            TransportError: If the exchange fails or returns nothing
        """
        name = criterion.value if isinstance(criterion, Criterion) else str(criterion or "")
        if not name:
            raise ValueError("criterion cannot be empty")
        body = send(
            self.http_client,
            self.config,
            "GET",
            self.config.directory_url,
            params=directory_query_params(name, value, hashed),
            headers=JSON_HEADERS,
        )

        response = ApiResponse.from_hash(_decode_json(body), PayloadType.USER_PROFILE)
        if response is None:
            raise MiiCardError(INVALID_RESPONSE, "Directory search did not return a JSON object")
        if not response.is_success:
            logger.debug("Directory search by %s found nothing: %s", name, response.error_code)
        return response.data

    def find_by_email(self, email_address: str, hashed: bool = False) -> Optional[UserProfile]:
        return self.find_by(Criterion.EMAIL, email_address, hashed)

    def find_by_phone_number(self, phone_number: str, hashed: bool = False) -> Optional[UserProfile]:
        return self.find_by(Criterion.PHONE, phone_number, hashed)

    def find_by_username(self, username: str, hashed: bool = False) -> Optional[UserProfile]:
        return self.find_by(Criterion.USERNAME, username, hashed)

    def find_by_twitter(self, handle_or_url: str, hashed: bool = False) -> Optional[UserProfile]:
        """Search by Twitter handle (like ``@miicard``) or profile URL."""
        return self.find_by(Criterion.TWITTER, handle_or_url, hashed)

    def find_by_facebook(self, profile_url: str, hashed: bool = False) -> Optional[UserProfile]:
        return self.find_by(Criterion.FACEBOOK, profile_url, hashed)

    def find_by_linkedin(self, profile_url: str, hashed: bool = False) -> Optional[UserProfile]:
        """Search by non-localised LinkedIn profile URL."""
        return self.find_by(Criterion.LINKEDIN, profile_url, hashed)

    def find_by_google(self, handle_or_url: str, hashed: bool = False) -> Optional[UserProfile]:
        return self.find_by(Criterion.GOOGLE, handle_or_url, hashed)

    def find_by_microsoft_id(self, profile_url: str, hashed: bool = False) -> Optional[UserProfile]:
        return self.find_by(Criterion.MICROSOFT_ID, profile_url, hashed)

    def find_by_ebay(self, handle_or_url: str, hashed: bool = False) -> Optional[UserProfile]:
        return self.find_by(Criterion.EBAY, handle_or_url, hashed)

    def find_by_veritas_vitae(self, vv_number_or_url: str, hashed: bool = False) -> Optional[UserProfile]:
        return self.find_by(Criterion.VERITAS_VITAE, vv_number_or_url, hashed)

    hash_identifier = staticmethod(hash_identifier)
