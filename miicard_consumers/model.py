"""Typed objects returned by the miiCard APIs, built from decoded JSON."""

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Protocol, TypeVar, Union, runtime_checkable

T = TypeVar("T")

_WRAPPED_DATE = re.compile(r"/Date\((\d+)")


class ApiCallStatus(IntEnum):
    """Overall status of an API call."""

    SUCCESS = 0
    FAILURE = 1


class ApiErrorCode(IntEnum):
    """Specific error reported by the API; SUCCESS when there was none."""

    SUCCESS = 0
    # Directory API
    UNKNOWN_SEARCH_CRITERION = 10
    NO_MATCHES = 11
    # Member has revoked access; a fresh OAuth exchange is needed
    ACCESS_REVOKED = 100
    USER_SUBSCRIPTION_LAPSED = 200
    # Transactional (snapshot) model
    TRANSACTIONAL_SUPPORT_DISABLED = 1000
    DEVELOPMENT_TRANSACTIONAL_SUPPORT_ONLY = 1010
    INVALID_SNAPSHOT_ID = 1020
    # Application status
    BLACKLISTED = 2000
    PRODUCT_DISABLED = 2010
    PRODUCT_DELETED = 2020
    EXCEPTION = 10000


class WebPropertyType(IntEnum):
    DOMAIN = 0
    WEBSITE = 1


class QualificationType(IntEnum):
    ACADEMIC = 0
    PROFESSIONAL = 1


class AuthenticationTokenType(IntEnum):
    """Kind of second factor used when the member logged in."""

    NONE = 0
    SOFT = 1
    HARD = 2


class RefreshState(IntEnum):
    """State of a financial data refresh."""

    UNKNOWN = 0
    DATA_AVAILABLE = 1
    IN_PROGRESS = 2


def try_get(hash_: Any, key: str, default: Any = None) -> Any:
    """Value of ``key`` in a decoded JSON object, or ``default`` if unavailable."""
    if not isinstance(hash_, Mapping):
        return default
    return hash_.get(key, default)


def parse_wrapped_date(value: Any) -> Optional[int]:
    """
    Parse a ``/Date(<milliseconds>)/`` string into UNIX seconds.

    Args:
        value: The serialised date, e.g. ``"/Date(1345812103000)/"``

    Returns:
        Whole seconds since the epoch, or None if no timestamp is embedded
    """
    if not isinstance(value, str):
        return None
    match = _WRAPPED_DATE.search(value)
    if match is None:
        return None
    return int(match.group(1)) // 1000


def _flag(hash_: Any, key: str) -> bool:
    return bool(try_get(hash_, key, False))


def _date(hash_: Any, key: str) -> Optional[int]:
    return parse_wrapped_date(try_get(hash_, key))


def _enum(enum_cls, value: Any):
    # Unknown codes are kept as the raw value
    if value is None:
        return None
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return value


def _list_of(hash_: Any, key: str, parser: Callable[[Any], Any]) -> list:
    items = try_get(hash_, key)
    if not isinstance(items, list):
        return []
    return [parser(item) for item in items]


@runtime_checkable
class Claim(Protocol):
    """A piece of profile information that miiCard may have verified."""

    verified: bool


@dataclass(frozen=True)
class Identity:
    """The member's account on another website."""

    verified: bool = False
    source: Optional[str] = None
    user_id: Optional[str] = None
    profile_url: Optional[str] = None

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["Identity"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            verified=_flag(hash_, "Verified"),
            source=try_get(hash_, "Source"),
            user_id=try_get(hash_, "UserId"),
            profile_url=try_get(hash_, "ProfileUrl"),
        )


@dataclass(frozen=True)
class EmailAddress:
    verified: bool = False
    display_name: Optional[str] = None
    address: Optional[str] = None
    is_primary: bool = False

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["EmailAddress"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            verified=_flag(hash_, "Verified"),
            display_name=try_get(hash_, "DisplayName"),
            address=try_get(hash_, "Address"),
            is_primary=_flag(hash_, "IsPrimary"),
        )


@dataclass(frozen=True)
class PhoneNumber:
    """
    A phone number linked to the member's profile.

    ``country_code`` is the ITU-T E.164 country code and ``national_number``
    the rest of the number.
    """

    verified: bool = False
    display_name: Optional[str] = None
    country_code: Optional[str] = None
    national_number: Optional[str] = None
    is_mobile: bool = False
    is_primary: bool = False

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["PhoneNumber"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            verified=_flag(hash_, "Verified"),
            display_name=try_get(hash_, "DisplayName"),
            country_code=try_get(hash_, "CountryCode"),
            national_number=try_get(hash_, "NationalNumber"),
            is_mobile=_flag(hash_, "IsMobile"),
            is_primary=_flag(hash_, "IsPrimary"),
        )


@dataclass(frozen=True)
class PostalAddress:
    verified: bool = False
    house: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    code: Optional[str] = None
    country: Optional[str] = None
    is_primary: bool = False

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["PostalAddress"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            verified=_flag(hash_, "Verified"),
            house=try_get(hash_, "House"),
            line1=try_get(hash_, "Line1"),
            line2=try_get(hash_, "Line2"),
            city=try_get(hash_, "City"),
            region=try_get(hash_, "Region"),
            code=try_get(hash_, "Code"),
            country=try_get(hash_, "Country"),
            is_primary=_flag(hash_, "IsPrimary"),
        )


@dataclass(frozen=True)
class WebProperty:
    """
    A domain or website the member has linked to their profile.

    For DOMAIN properties ``identifier`` is the domain name; for WEBSITE
    properties it is a URL.
    """

    verified: bool = False
    display_name: Optional[str] = None
    identifier: Optional[str] = None
    type: Union[WebPropertyType, int, None] = None

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["WebProperty"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            verified=_flag(hash_, "Verified"),
            display_name=try_get(hash_, "DisplayName"),
            identifier=try_get(hash_, "Identifier"),
            type=_enum(WebPropertyType, try_get(hash_, "Type")),
        )


@dataclass(frozen=True)
class Qualification:
    verified: bool = False
    type: Union[QualificationType, int, None] = None
    title: Optional[str] = None
    data_provider: Optional[str] = None
    data_provider_url: Optional[str] = None

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["Qualification"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            verified=_flag(hash_, "Verified"),
            type=_enum(QualificationType, try_get(hash_, "Type")),
            title=try_get(hash_, "Title"),
            data_provider=try_get(hash_, "DataProvider"),
            data_provider_url=try_get(hash_, "DataProviderUrl"),
        )


@dataclass(frozen=True)
class UserProfile:
    """
    The subset of a member's identity shared with your application.

    ``last_verified`` and ``date_of_birth`` are UNIX timestamps.
    ``public_profile`` holds the part of the identity the member has
    published on their public profile page, when ``has_public_profile``.
    """

    username: Optional[str] = None
    salutation: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    previous_first_name: Optional[str] = None
    previous_middle_name: Optional[str] = None
    previous_last_name: Optional[str] = None
    last_verified: Optional[int] = None
    date_of_birth: Optional[int] = None
    age: Optional[int] = None
    profile_url: Optional[str] = None
    profile_short_url: Optional[str] = None
    card_image_url: Optional[str] = None
    email_addresses: List[EmailAddress] = field(default_factory=list)
    identities: List[Identity] = field(default_factory=list)
    phone_numbers: List[PhoneNumber] = field(default_factory=list)
    postal_addresses: List[PostalAddress] = field(default_factory=list)
    web_properties: List[WebProperty] = field(default_factory=list)
    qualifications: List[Qualification] = field(default_factory=list)
    identity_assured: bool = False
    has_public_profile: bool = False
    public_profile: Optional["UserProfile"] = None

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["UserProfile"]:
        """Build a profile, including any nested public profile."""
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            username=try_get(hash_, "Username"),
            salutation=try_get(hash_, "Salutation"),
            first_name=try_get(hash_, "FirstName"),
            middle_name=try_get(hash_, "MiddleName"),
            last_name=try_get(hash_, "LastName"),
            previous_first_name=try_get(hash_, "PreviousFirstName"),
            previous_middle_name=try_get(hash_, "PreviousMiddleName"),
            previous_last_name=try_get(hash_, "PreviousLastName"),
            last_verified=_date(hash_, "LastVerified"),
            date_of_birth=_date(hash_, "DateOfBirth"),
            age=try_get(hash_, "Age"),
            profile_url=try_get(hash_, "ProfileUrl"),
            profile_short_url=try_get(hash_, "ProfileShortUrl"),
            card_image_url=try_get(hash_, "CardImageUrl"),
            email_addresses=_list_of(hash_, "EmailAddresses", EmailAddress.from_hash),
            identities=_list_of(hash_, "Identities", Identity.from_hash),
            phone_numbers=_list_of(hash_, "PhoneNumbers", PhoneNumber.from_hash),
            postal_addresses=_list_of(hash_, "PostalAddresses", PostalAddress.from_hash),
            web_properties=_list_of(hash_, "WebProperties", WebProperty.from_hash),
            qualifications=_list_of(hash_, "Qualifications", Qualification.from_hash),
            identity_assured=_flag(hash_, "IdentityAssured"),
            has_public_profile=_flag(hash_, "HasPublicProfile"),
            public_profile=cls.from_hash(try_get(hash_, "PublicProfile")),
        )


@dataclass(frozen=True)
class IdentitySnapshotDetails:
    """
    Metadata of a snapshot of a member's identity.

    Identity checks are skipped for test users, so production code should
    reject snapshots where ``was_test_user`` is set.
    """

    snapshot_id: Optional[str] = None
    username: Optional[str] = None
    timestamp_utc: Optional[int] = None
    was_test_user: bool = False

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["IdentitySnapshotDetails"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            snapshot_id=try_get(hash_, "SnapshotId"),
            username=try_get(hash_, "Username"),
            timestamp_utc=_date(hash_, "TimestampUtc"),
            was_test_user=_flag(hash_, "WasTestUser"),
        )


@dataclass(frozen=True)
class IdentitySnapshot:
    details: Optional[IdentitySnapshotDetails] = None
    snapshot: Optional[UserProfile] = None

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["IdentitySnapshot"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            details=IdentitySnapshotDetails.from_hash(try_get(hash_, "Details")),
            snapshot=UserProfile.from_hash(try_get(hash_, "Snapshot")),
        )


@dataclass(frozen=True)
class GeographicLocation:
    """Where the member was when they authenticated, as far as known."""

    location_provider: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    lat_long_accuracy_metres: Optional[int] = None
    approximate_address: Optional[PostalAddress] = None

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["GeographicLocation"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            location_provider=try_get(hash_, "LocationProvider"),
            latitude=try_get(hash_, "Latitude"),
            longitude=try_get(hash_, "Longitude"),
            lat_long_accuracy_metres=try_get(hash_, "LatLongAccuracyMetres"),
            approximate_address=PostalAddress.from_hash(try_get(hash_, "ApproximateAddress")),
        )


@dataclass(frozen=True)
class AuthenticationDetails:
    authentication_time_utc: Optional[int] = None
    second_factor_token_type: Union[AuthenticationTokenType, int, None] = None
    second_factor_provider: Optional[str] = None
    locations: List[GeographicLocation] = field(default_factory=list)

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["AuthenticationDetails"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            authentication_time_utc=_date(hash_, "AuthenticationTimeUtc"),
            second_factor_token_type=_enum(
                AuthenticationTokenType, try_get(hash_, "SecondFactorTokenType")
            ),
            second_factor_provider=try_get(hash_, "SecondFactorProvider"),
            locations=_list_of(hash_, "Locations", GeographicLocation.from_hash),
        )


@dataclass(frozen=True)
class FinancialTransaction:
    date: Optional[int] = None
    amount_credited: Optional[float] = None
    amount_debited: Optional[float] = None
    description: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["FinancialTransaction"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            date=_date(hash_, "Date"),
            amount_credited=try_get(hash_, "AmountCredited"),
            amount_debited=try_get(hash_, "AmountDebited"),
            description=try_get(hash_, "Description"),
            id=try_get(hash_, "ID"),
        )


@dataclass(frozen=True)
class FinancialAccount:
    """
    A bank account the member has shared.

    Sums and counts cover ``transactions``; ``from_date`` and
    ``last_updated_utc`` are UNIX timestamps.
    """

    account_name: Optional[str] = None
    holder: Optional[str] = None
    sort_code: Optional[str] = None
    account_number: Optional[str] = None
    type: Optional[str] = None
    from_date: Optional[int] = None
    last_updated_utc: Optional[int] = None
    closing_balance: Optional[float] = None
    debits_sum: Optional[float] = None
    debits_count: Optional[int] = None
    credits_sum: Optional[float] = None
    credits_count: Optional[int] = None
    currency_iso: Optional[str] = None
    transactions: List[FinancialTransaction] = field(default_factory=list)

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["FinancialAccount"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            account_name=try_get(hash_, "AccountName"),
            holder=try_get(hash_, "Holder"),
            sort_code=try_get(hash_, "SortCode"),
            account_number=try_get(hash_, "AccountNumber"),
            type=try_get(hash_, "Type"),
            from_date=_date(hash_, "FromDate"),
            last_updated_utc=_date(hash_, "LastUpdatedUtc"),
            closing_balance=try_get(hash_, "ClosingBalance"),
            debits_sum=try_get(hash_, "DebitsSum"),
            debits_count=try_get(hash_, "DebitsCount"),
            credits_sum=try_get(hash_, "CreditsSum"),
            credits_count=try_get(hash_, "CreditsCount"),
            currency_iso=try_get(hash_, "CurrencyIso"),
            transactions=_list_of(hash_, "Transactions", FinancialTransaction.from_hash),
        )


@dataclass(frozen=True)
class FinancialCreditCard:
    account_name: Optional[str] = None
    holder: Optional[str] = None
    account_number: Optional[str] = None
    type: Optional[str] = None
    from_date: Optional[int] = None
    last_updated_utc: Optional[int] = None
    credit_limit: Optional[float] = None
    running_balance: Optional[float] = None
    debits_sum: Optional[float] = None
    debits_count: Optional[int] = None
    credits_sum: Optional[float] = None
    credits_count: Optional[int] = None
    currency_iso: Optional[str] = None
    transactions: List[FinancialTransaction] = field(default_factory=list)

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["FinancialCreditCard"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            account_name=try_get(hash_, "AccountName"),
            holder=try_get(hash_, "Holder"),
            account_number=try_get(hash_, "AccountNumber"),
            type=try_get(hash_, "Type"),
            from_date=_date(hash_, "FromDate"),
            last_updated_utc=_date(hash_, "LastUpdatedUtc"),
            credit_limit=try_get(hash_, "CreditLimit"),
            running_balance=try_get(hash_, "RunningBalance"),
            debits_sum=try_get(hash_, "DebitsSum"),
            debits_count=try_get(hash_, "DebitsCount"),
            credits_sum=try_get(hash_, "CreditsSum"),
            credits_count=try_get(hash_, "CreditsCount"),
            currency_iso=try_get(hash_, "CurrencyIso"),
            transactions=_list_of(hash_, "Transactions", FinancialTransaction.from_hash),
        )


@dataclass(frozen=True)
class FinancialProvider:
    provider_name: Optional[str] = None
    financial_accounts: List[FinancialAccount] = field(default_factory=list)
    financial_credit_cards: List[FinancialCreditCard] = field(default_factory=list)

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["FinancialProvider"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            provider_name=try_get(hash_, "ProviderName"),
            financial_accounts=_list_of(hash_, "FinancialAccounts", FinancialAccount.from_hash),
            financial_credit_cards=_list_of(
                hash_, "FinancialCreditCards", FinancialCreditCard.from_hash
            ),
        )


@dataclass(frozen=True)
class FinancialData:
    financial_providers: List[FinancialProvider] = field(default_factory=list)

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["FinancialData"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(
            financial_providers=_list_of(hash_, "FinancialProviders", FinancialProvider.from_hash),
        )


@dataclass(frozen=True)
class FinancialRefreshStatus:
    state: Union[RefreshState, int, None] = None

    @classmethod
    def from_hash(cls, hash_: Any) -> Optional["FinancialRefreshStatus"]:
        if not isinstance(hash_, Mapping):
            return None
        return cls(state=_enum(RefreshState, try_get(hash_, "State")))


class PayloadType(Enum):
    """Known shapes of the ``Data`` member of an API response."""

    RAW = "raw"
    USER_PROFILE = "user_profile"
    IDENTITY_SNAPSHOT = "identity_snapshot"
    IDENTITY_SNAPSHOT_DETAILS = "identity_snapshot_details"
    AUTHENTICATION_DETAILS = "authentication_details"
    FINANCIAL_DATA = "financial_data"
    FINANCIAL_REFRESH_STATUS = "financial_refresh_status"


_PAYLOAD_PARSERS: Dict[PayloadType, Callable[[Any], Any]] = {
    PayloadType.USER_PROFILE: UserProfile.from_hash,
    PayloadType.IDENTITY_SNAPSHOT: IdentitySnapshot.from_hash,
    PayloadType.IDENTITY_SNAPSHOT_DETAILS: IdentitySnapshotDetails.from_hash,
    PayloadType.AUTHENTICATION_DETAILS: AuthenticationDetails.from_hash,
    PayloadType.FINANCIAL_DATA: FinancialData.from_hash,
    PayloadType.FINANCIAL_REFRESH_STATUS: FinancialRefreshStatus.from_hash,
}


def parse_payload(payload_type: PayloadType, data: Any, is_array_payload: bool = False) -> Any:
    """
    Convert the ``Data`` member of a response into typed objects.

    Args:
        payload_type: Shape of the payload
        data: The decoded ``Data`` value
        is_array_payload: Whether ``data`` is a list of like objects

    Returns:
        The typed payload, ``data`` itself for RAW payloads
    """
    if payload_type is PayloadType.RAW:
        return data

    parser = _PAYLOAD_PARSERS[payload_type]
    if is_array_payload:
        if not isinstance(data, list):
            return None
        return [parser(item) for item in data]
    return parser(data)


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """
    Envelope around most API responses.

    ``error_message`` is for diagnostics only and not suitable for display
    to the public. ``is_test_user`` is set for miiCard test accounts, whose
    identity checks are skipped; production code should reject them.
    """

    status: Union[ApiCallStatus, int, None] = None
    error_code: Union[ApiErrorCode, int, None] = None
    error_message: Optional[str] = None
    is_test_user: bool = False
    data: Optional[T] = None

    @property
    def is_success(self) -> bool:
        return self.status == ApiCallStatus.SUCCESS

    @classmethod
    def from_hash(
        cls,
        hash_: Any,
        payload_type: PayloadType = PayloadType.RAW,
        is_array_payload: bool = False,
    ) -> Optional["ApiResponse"]:
        """
        Build a response from a decoded JSON object.

        Args:
            hash_: The decoded response
            payload_type: Shape of the ``Data`` member
            is_array_payload: Whether ``Data`` is a list of like objects

        Returns:
            The response, or None if ``hash_`` is not an object. A failed
            call never carries a payload.
        """
        if not isinstance(hash_, Mapping):
            return None

        status = _enum(ApiCallStatus, try_get(hash_, "Status"))
        data = None
        if status != ApiCallStatus.FAILURE:
            data = parse_payload(payload_type, try_get(hash_, "Data"), is_array_payload)

        return cls(
            status=status,
            error_code=_enum(ApiErrorCode, try_get(hash_, "ErrorCode")),
            error_message=try_get(hash_, "ErrorMessage"),
            is_test_user=_flag(hash_, "IsTestUser"),
            data=data,
        )
