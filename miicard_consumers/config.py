"""Connection settings for the miiCard service."""

import os
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from dotenv import load_dotenv

from .urls import CLAIMS_SVC, DIRECTORY_SVC, FINANCIAL_SVC, OAUTH_ENDPOINT

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class MiiCardConfig:
    """
    Endpoints, timeouts and TLS settings used by every request.

    No certificate ships with the package. Without ``ca_bundle`` the
    server is verified against the default trust store of ``requests``;
    set it (or ``MIICARD_CA_BUNDLE``) to pin a CA for the miiCard host.
    """

    oauth_endpoint: str = OAUTH_ENDPOINT
    claims_url: str = CLAIMS_SVC
    financial_url: str = FINANCIAL_SVC
    directory_url: str = DIRECTORY_SVC
    connect_timeout: float = 90
    read_timeout: float = 90
    verify_ssl: bool = True
    ca_bundle: Optional[str] = None
    user_agent: str = "miiCard Python"

    @property
    def timeout(self) -> Tuple[float, float]:
        """(connect, read) timeout pair in the form ``requests`` takes."""
        return (self.connect_timeout, self.read_timeout)

    @property
    def requests_verify(self) -> Union[bool, str]:
        """Value for the ``verify`` argument of ``requests``.

        A pinned CA bundle only applies while verification is on.
        """
        if self.verify_ssl and self.ca_bundle:
            return self.ca_bundle
        return self.verify_ssl

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "MiiCardConfig":
        """
        Build a config from ``MIICARD_*`` environment variables.

        A ``.env`` file is loaded first if one can be found; variables already
        set in the environment win over it.

        Args:
            dotenv_path: Explicit path of the ``.env`` file to load

        Returns:
            Config with defaults for anything not set
        """
        load_dotenv(dotenv_path)
        defaults = cls()
        return cls(
            oauth_endpoint=os.getenv("MIICARD_OAUTH_ENDPOINT", defaults.oauth_endpoint),
            claims_url=os.getenv("MIICARD_CLAIMS_URL", defaults.claims_url),
            financial_url=os.getenv("MIICARD_FINANCIAL_URL", defaults.financial_url),
            directory_url=os.getenv("MIICARD_DIRECTORY_URL", defaults.directory_url),
            connect_timeout=float(os.getenv("MIICARD_CONNECT_TIMEOUT", defaults.connect_timeout)),
            read_timeout=float(os.getenv("MIICARD_READ_TIMEOUT", defaults.read_timeout)),
            verify_ssl=os.getenv("MIICARD_VERIFY_SSL", "true").strip().lower() in _TRUE_VALUES,
            ca_bundle=os.getenv("MIICARD_CA_BUNDLE") or None,
            user_agent=os.getenv("MIICARD_USER_AGENT", defaults.user_agent),
        )

    def validate(self) -> List[str]:
        """Validate configuration. Returns list of errors."""
        errors = []
        for name in ("oauth_endpoint", "claims_url", "financial_url", "directory_url"):
            if not getattr(self, name).startswith("https://"):
                errors.append(f"{name} must be an https:// URL")
        if self.connect_timeout <= 0:
            errors.append("connect_timeout must be positive")
        if self.read_timeout <= 0:
            errors.append("read_timeout must be positive")
        if self.ca_bundle and not os.path.isfile(self.ca_bundle):
            errors.append(f"ca_bundle not found: {self.ca_bundle}")
        return errors
