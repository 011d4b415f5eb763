# MDM Client
# File: config.py
# Version: v2

"""Configuration loading for the MDM client."""

from __future__ import annotations

from dataclasses import dataclass
import getpass
import os


DEFAULT_CANONICAL_SYSTEM = "Nexus"


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean-like environment variable.

    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _parse_float_env(
    name: str,
    default: float,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    """Parse a numeric environment variable with clamping and safe fallback."""
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        value = float(default)
    else:
        try:
            value = float(str(raw).strip())
        except ValueError:
            value = float(default)

    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value

    return value


def _clean_env(name: str) -> str | None:
    val = os.getenv(name)
    if val is None or not val.strip():
        return None
    return val.strip()


@dataclass
class MdmClientConfig:
    """Configuration values required to talk to an MDM service.

    ``base_url`` is the service root; each entity type lives underneath it
    (``<base_url>/sourcesystem`` and so on). ``source_system_name`` is the
    name stamped on outgoing request-info headers when the caller does not
    supply one.
    """

    base_url: str | None
    source_system_name: str | None = None
    user_name: str | None = None

    # Pre-acquired value for the Authorization header, if the service needs one.
    authorization: str | None = None

    canonical_system: str = DEFAULT_CANONICAL_SYSTEM
    verify_tls: bool = True
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "MdmClientConfig":
        """Create configuration from environment variables."""
        base_url = _clean_env("MDM_BASE_URL")
        if base_url:
            base_url = base_url.rstrip("/")

        return cls(
            base_url=base_url,
            source_system_name=_clean_env("MDM_REQUEST_SOURCE_SYSTEM"),
            user_name=_clean_env("MDM_USER_NAME"),
            authorization=_clean_env("MDM_AUTHORIZATION"),
            canonical_system=_clean_env("MDM_CANONICAL_SYSTEM")
            or DEFAULT_CANONICAL_SYSTEM,
            verify_tls=_parse_bool_env("MDM_VERIFY_TLS", default=True),
            timeout_seconds=_parse_float_env(
                "MDM_TIMEOUT_SECONDS", default=30.0, min_value=1.0, max_value=600.0
            ),
        )

    def entity_uri(self, entity_name: str) -> str:
        """Return the base URI for one entity type."""
        if not self.base_url:
            raise RuntimeError(
                "MDM_BASE_URL is not set. "
                "Please configure it before requesting entity services."
            )
        return f"{self.base_url.rstrip('/')}/{entity_name.lower()}"

    def resolve_user_name(self) -> str:
        """User name sent with every request; falls back to the OS login."""
        if self.user_name:
            return self.user_name
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            # No passwd entry / login name in some containers.
            return "unknown"
