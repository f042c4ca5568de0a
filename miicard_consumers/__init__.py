"""
miiCard Consumers - client library for the miiCard identity service

OAuth 1.0a authorisation against miiCard plus wrappers for the Claims,
Financial and Directory APIs.
"""

from .authorisation import (
    AuthorisationState,
    MemorySessionStore,
    MiiCard,
    RedirectResult,
    SessionStore,
)
from .config import MiiCardConfig
from .errors import AuthorisationError, MiiCardError, TransportError
from .model import (
    ApiCallStatus,
    ApiErrorCode,
    ApiResponse,
    AuthenticationDetails,
    AuthenticationTokenType,
    Claim,
    EmailAddress,
    FinancialAccount,
    FinancialCreditCard,
    FinancialData,
    FinancialProvider,
    FinancialRefreshStatus,
    FinancialTransaction,
    GeographicLocation,
    Identity,
    IdentitySnapshot,
    IdentitySnapshotDetails,
    PhoneNumber,
    PostalAddress,
    Qualification,
    QualificationType,
    RefreshState,
    UserProfile,
    WebProperty,
    WebPropertyType,
)
from .oauth import Credentials
from .services import ClaimsService, Criterion, DirectoryService, FinancialService, hash_identifier
from .transport import OAuthSignedRequestMaker

__version__ = "0.1.0"
__all__ = [
    "MiiCard",
    "MiiCardConfig",
    "MemorySessionStore",
    "SessionStore",
    "RedirectResult",
    "AuthorisationState",
    "OAuthSignedRequestMaker",
    "Credentials",
    "ClaimsService",
    "FinancialService",
    "DirectoryService",
    "Criterion",
    "hash_identifier",
    "MiiCardError",
    "TransportError",
    "AuthorisationError",
    "ApiResponse",
    "ApiCallStatus",
    "ApiErrorCode",
    "Claim",
    "Identity",
    "EmailAddress",
    "PhoneNumber",
    "PostalAddress",
    "WebProperty",
    "WebPropertyType",
    "Qualification",
    "QualificationType",
    "UserProfile",
    "IdentitySnapshot",
    "IdentitySnapshotDetails",
    "GeographicLocation",
    "AuthenticationDetails",
    "AuthenticationTokenType",
    "FinancialTransaction",
    "FinancialAccount",
    "FinancialCreditCard",
    "FinancialProvider",
    "FinancialData",
    "FinancialRefreshStatus",
    "RefreshState",
]
