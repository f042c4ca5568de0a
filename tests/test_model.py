"""Tests for response deserialisation."""

import json

from miicard_consumers import (
    ApiCallStatus,
    ApiErrorCode,
    ApiResponse,
    AuthenticationDetails,
    AuthenticationTokenType,
    Claim,
    FinancialData,
    IdentitySnapshot,
    RefreshState,
    UserProfile,
    WebPropertyType,
)
from miicard_consumers.model import PayloadType, parse_payload, parse_wrapped_date

PROFILE_JSON = r'''{"CardImageUrl":"https:\/\/my.miicard.com\/img\/test.png","EmailAddresses":[{"Verified":true,"Address":"test@example.com","DisplayName":"testEmail","IsPrimary":true},{"Verified":false,"Address":"test2@example.com","DisplayName":"test2Email","IsPrimary":false}],"FirstName":"Test","HasPublicProfile":true,"Identities":null,"IdentityAssured":true,"LastName":"User","LastVerified":"\/Date(1345812103)\/","MiddleName":"Middle","PhoneNumbers":[{"Verified":true,"CountryCode":"44","DisplayName":"Default","IsMobile":true,"IsPrimary":true,"NationalNumber":"7800123456"},{"Verified":false,"CountryCode":"44","DisplayName":"Default","IsMobile":false,"IsPrimary":false,"NationalNumber":"7800123457"}],"PostalAddresses":[{"House":"Addr1 House1","Line1":"Addr1 Line1","Line2":"Addr1 Line2","City":"Addr1 City","Region":"Addr1 Region","Code":"Addr1 Code","Country":"Addr1 Country","IsPrimary":true,"Verified":true},{"House":"Addr2 House1","Line1":"Addr2 Line1","Line2":"Addr2 Line2","City":"Addr2 City","Region":"Addr2 Region","Code":"Addr2 Code","Country":"Addr2 Country","IsPrimary":false,"Verified":false}],"PreviousFirstName":"PrevFirst","PreviousLastName":"PrevLast","PreviousMiddleName":"PrevMiddle","ProfileShortUrl":"http:\/\/miicard.me\/123456","ProfileUrl":"https:\/\/my.miicard.com\/card\/test","PublicProfile":{"CardImageUrl":"https:\/\/my.miicard.com\/img\/test.png","FirstName":"Test","HasPublicProfile":true,"IdentityAssured":true,"LastName":"User","LastVerified":"\/Date(1345812103)\/","MiddleName":"Middle","PreviousFirstName":"PrevFirst","PreviousLastName":"PrevLast","PreviousMiddleName":"PrevMiddle","ProfileShortUrl":"http:\/\/miicard.me\/123456","ProfileUrl":"https:\/\/my.miicard.com\/card\/test","PublicProfile":null,"Salutation":"Ms","Username":"testUser"},"Salutation":"Ms","Username":"testUser","WebProperties":[{"Verified":true,"DisplayName":"example.com","Identifier":"example.com","Type":0},{"Verified":false,"DisplayName":"2.example.com","Identifier":"http:\/\/www.2.example.com","Type":1}]}'''

BOOLEAN_RESPONSE_JSON = '{"ErrorCode":0,"Status":0,"ErrorMessage":"A test error message","Data":true}'


class TestUserProfile:
    """Tests for UserProfile deserialisation."""

    def test_basics(self):
        """Test top-level profile fields."""
        profile = UserProfile.from_hash(json.loads(PROFILE_JSON))
        _assert_basics(profile)

    def test_email_addresses(self):
        """Test email addresses keep order and flags."""
        emails = UserProfile.from_hash(json.loads(PROFILE_JSON)).email_addresses

        assert len(emails) == 2
        assert emails[0].verified is True
        assert emails[0].address == "test@example.com"
        assert emails[0].display_name == "testEmail"
        assert emails[0].is_primary is True
        assert emails[1].verified is False
        assert emails[1].address == "test2@example.com"
        assert emails[1].is_primary is False

    def test_phone_numbers(self):
        """Test phone numbers."""
        phones = UserProfile.from_hash(json.loads(PROFILE_JSON)).phone_numbers

        assert phones[0].country_code == "44"
        assert phones[0].national_number == "7800123456"
        assert phones[0].is_mobile is True
        assert phones[0].is_primary is True
        assert phones[1].national_number == "7800123457"
        assert phones[1].verified is False
        assert phones[1].is_mobile is False

    def test_postal_addresses(self):
        """Test postal addresses."""
        addresses = UserProfile.from_hash(json.loads(PROFILE_JSON)).postal_addresses

        first, second = addresses
        assert first.house == "Addr1 House1"
        assert first.line1 == "Addr1 Line1"
        assert first.line2 == "Addr1 Line2"
        assert first.city == "Addr1 City"
        assert first.region == "Addr1 Region"
        assert first.code == "Addr1 Code"
        assert first.country == "Addr1 Country"
        assert first.is_primary is True
        assert first.verified is True
        assert second.house == "Addr2 House1"
        assert second.is_primary is False
        assert second.verified is False

    def test_web_properties(self):
        """Test web property types map to the enum."""
        props = UserProfile.from_hash(json.loads(PROFILE_JSON)).web_properties

        assert props[0].identifier == "example.com"
        assert props[0].type is WebPropertyType.DOMAIN
        assert props[1].identifier == "http://www.2.example.com"
        assert props[1].type is WebPropertyType.WEBSITE
        assert props[1].verified is False

    def test_null_list_is_empty(self):
        """Test a null array becomes an empty list."""
        profile = UserProfile.from_hash(json.loads(PROFILE_JSON))
        assert profile.identities == []
        assert profile.qualifications == []

    def test_public_profile(self):
        """Test the nested public profile is parsed recursively."""
        profile = UserProfile.from_hash(json.loads(PROFILE_JSON))

        public = profile.public_profile
        _assert_basics(public)
        assert public.public_profile is None
        assert public.email_addresses == []

    def test_claims_are_claims(self):
        """Test verifiable entities satisfy the Claim protocol."""
        profile = UserProfile.from_hash(json.loads(PROFILE_JSON))
        for claim in profile.email_addresses + profile.phone_numbers + profile.web_properties:
            assert isinstance(claim, Claim)

    def test_missing_fields(self):
        """Test an empty object gives defaults."""
        profile = UserProfile.from_hash({})
        assert profile.username is None
        assert profile.last_verified is None
        assert profile.identity_assured is False
        assert profile.phone_numbers == []

    def test_deserialise_twice(self):
        """Test two parses of one hash are equal but independent."""
        hash_ = json.loads(PROFILE_JSON)
        first = UserProfile.from_hash(hash_)
        second = UserProfile.from_hash(hash_)

        assert first == second
        assert first is not second
        assert first.email_addresses is not second.email_addresses

    def test_non_object(self):
        """Test non-object input gives None."""
        assert UserProfile.from_hash(None) is None
        assert UserProfile.from_hash([1, 2]) is None


class TestWrappedDate:
    """Tests for /Date(ms)/ parsing."""

    def test_milliseconds_to_seconds(self):
        """Test milliseconds are converted to whole seconds."""
        assert parse_wrapped_date("/Date(1345812103000)/") == 1345812103

    def test_timezone_suffix_ignored(self):
        """Test a trailing offset does not affect the value."""
        assert parse_wrapped_date("/Date(1345812103000+0100)/") == 1345812103

    def test_unparseable(self):
        """Test non-date values give None."""
        assert parse_wrapped_date("yesterday") is None
        assert parse_wrapped_date(None) is None
        assert parse_wrapped_date(12345) is None


class TestApiResponse:
    """Tests for the response envelope."""

    def test_boolean_payload(self):
        """Test a raw boolean payload."""
        response = ApiResponse.from_hash(json.loads(BOOLEAN_RESPONSE_JSON))

        assert response.status is ApiCallStatus.SUCCESS
        assert response.error_code is ApiErrorCode.SUCCESS
        assert response.error_message == "A test error message"
        assert response.data is True
        assert response.is_success
        assert response.is_test_user is False

    def test_failure_has_no_data(self):
        """Test a failed call never carries a payload."""
        response = ApiResponse.from_hash(
            {"Status": 1, "ErrorCode": 100, "Data": {"Username": "x"}}, PayloadType.USER_PROFILE
        )

        assert not response.is_success
        assert response.error_code is ApiErrorCode.ACCESS_REVOKED
        assert response.data is None

    def test_unknown_error_code_kept(self):
        """Test unrecognised error codes are kept as integers."""
        response = ApiResponse.from_hash({"Status": 1, "ErrorCode": 31337})
        assert response.error_code == 31337

    def test_test_user_flag(self):
        """Test the test-user flag."""
        response = ApiResponse.from_hash({"Status": 0, "ErrorCode": 0, "IsTestUser": True})
        assert response.is_test_user is True

    def test_non_object(self):
        """Test non-object input gives None."""
        assert ApiResponse.from_hash("nope") is None

    def test_array_payload(self):
        """Test array payloads are parsed element-wise."""
        response = ApiResponse.from_hash(
            {
                "Status": 0,
                "ErrorCode": 0,
                "Data": [
                    {"SnapshotId": "a", "Username": "u", "TimestampUtc": "/Date(1000)/", "WasTestUser": True},
                    {"SnapshotId": "b"},
                ],
            },
            PayloadType.IDENTITY_SNAPSHOT_DETAILS,
            is_array_payload=True,
        )

        first, second = response.data
        assert first.snapshot_id == "a"
        assert first.timestamp_utc == 1
        assert first.was_test_user is True
        assert second.snapshot_id == "b"
        assert second.was_test_user is False


class TestPayloads:
    """Tests for the other payload shapes."""

    def test_non_list_array_payload(self):
        """Test a non-list array payload gives None."""
        assert parse_payload(PayloadType.IDENTITY_SNAPSHOT_DETAILS, {"a": 1}, True) is None

    def test_identity_snapshot(self):
        """Test a snapshot wraps details and a profile."""
        snapshot = IdentitySnapshot.from_hash(
            {
                "Details": {"SnapshotId": "s1", "Username": "testUser"},
                "Snapshot": json.loads(PROFILE_JSON),
            }
        )
        assert snapshot.details.snapshot_id == "s1"
        assert snapshot.snapshot.username == "testUser"

    def test_authentication_details(self):
        """Test authentication details and locations."""
        details = AuthenticationDetails.from_hash(
            {
                "AuthenticationTimeUtc": "/Date(1345812103000)/",
                "SecondFactorTokenType": 1,
                "SecondFactorProvider": "miiCard",
                "Locations": [
                    {
                        "LocationProvider": "GPS",
                        "Latitude": 55.86,
                        "Longitude": -4.25,
                        "LatLongAccuracyMetres": 20,
                        "ApproximateAddress": {"City": "Glasgow", "Country": "UK"},
                    }
                ],
            }
        )
        assert details.authentication_time_utc == 1345812103
        assert details.second_factor_token_type is AuthenticationTokenType.SOFT
        location = details.locations[0]
        assert location.latitude == 55.86
        assert location.lat_long_accuracy_metres == 20
        assert location.approximate_address.city == "Glasgow"

    def test_financial_data(self):
        """Test providers, accounts, cards and transactions."""
        data = FinancialData.from_hash(
            {
                "FinancialProviders": [
                    {
                        "ProviderName": "Test Bank",
                        "FinancialAccounts": [
                            {
                                "AccountName": "Current",
                                "SortCode": "00-00-00",
                                "ClosingBalance": 100.5,
                                "CurrencyIso": "GBP",
                                "LastUpdatedUtc": "/Date(2000)/",
                                "Transactions": [
                                    {"Date": "/Date(3000)/", "AmountDebited": 10.0, "Description": "Coffee", "ID": "t1"}
                                ],
                            }
                        ],
                        "FinancialCreditCards": [
                            {"AccountName": "Card", "CreditLimit": 1000.0, "RunningBalance": -50.0}
                        ],
                    }
                ]
            }
        )
        provider = data.financial_providers[0]
        assert provider.provider_name == "Test Bank"
        account = provider.financial_accounts[0]
        assert account.closing_balance == 100.5
        assert account.last_updated_utc == 2
        assert account.transactions[0].date == 3
        assert account.transactions[0].amount_credited is None
        assert account.transactions[0].id == "t1"
        card = provider.financial_credit_cards[0]
        assert card.credit_limit == 1000.0
        assert card.transactions == []

    def test_refresh_status(self):
        """Test refresh state maps to the enum."""
        response = ApiResponse.from_hash(
            {"Status": 0, "ErrorCode": 0, "Data": {"State": 2}}, PayloadType.FINANCIAL_REFRESH_STATUS
        )
        assert response.data.state is RefreshState.IN_PROGRESS


def _assert_basics(profile):
    """Check fields shared by the profile and its public profile."""
    assert profile is not None
    assert profile.card_image_url == "https://my.miicard.com/img/test.png"
    assert profile.first_name == "Test"
    assert profile.middle_name == "Middle"
    assert profile.last_name == "User"
    assert profile.previous_first_name == "PrevFirst"
    assert profile.previous_middle_name == "PrevMiddle"
    assert profile.previous_last_name == "PrevLast"
    assert profile.identity_assured is True
    assert profile.last_verified == 1345812
    assert profile.has_public_profile is True
    assert profile.profile_short_url == "http://miicard.me/123456"
    assert profile.profile_url == "https://my.miicard.com/card/test"
    assert profile.salutation == "Ms"
    assert profile.username == "testUser"
