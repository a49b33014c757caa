"""Environment-based settings for the App Store Connect CLI.

Credentials come from the environment:

    ASC_ISSUER_ID         API issuer ID (UUID from the Keys page)
    ASC_KEY_ID            API key ID (10 characters)
    ASC_PRIVATE_KEY_PATH  Path to the AuthKey_XXXXXXXXXX.p8 file

Optional overrides: ASC_BASE_URL, ASC_REQUEST_TIMEOUT (seconds).
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .config import (
    API_BASE_URL,
    TOKEN_DURATION,
    TOKEN_REFRESH_BUFFER,
    REQUEST_TIMEOUT,
    ENV_ISSUER_ID,
    ENV_KEY_ID,
    ENV_PRIVATE_KEY_PATH,
    ENV_BASE_URL,
    ENV_REQUEST_TIMEOUT,
    REQUIRED_VARIABLES,
)
from .client.errors import ConfigError


@dataclass(frozen=True)
class Settings:
    """Resolved credentials and HTTP settings."""

    issuer_id: str
    key_id: str
    private_key_path: str
    base_url: str = API_BASE_URL
    request_timeout: float = REQUEST_TIMEOUT
    token_duration: int = TOKEN_DURATION
    refresh_buffer: int = TOKEN_REFRESH_BUFFER


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Raises:
        ConfigError: If a required variable is missing, the key file does
            not exist, or the timeout is not a positive number
    """
    env = os.environ if environ is None else environ

    for name in REQUIRED_VARIABLES:
        if not env.get(name, "").strip():
            raise ConfigError(f"{name} environment variable is required", variable=name)

    key_path = os.path.expanduser(env[ENV_PRIVATE_KEY_PATH].strip())
    if not os.path.isfile(key_path):
        raise ConfigError(
            f"private key file not found: {key_path}",
            variable=ENV_PRIVATE_KEY_PATH,
        )

    return Settings(
        issuer_id=env[ENV_ISSUER_ID].strip(),
        key_id=env[ENV_KEY_ID].strip(),
        private_key_path=key_path,
        base_url=(env.get(ENV_BASE_URL) or API_BASE_URL).rstrip("/"),
        request_timeout=_parse_timeout(env.get(ENV_REQUEST_TIMEOUT)),
    )


def check_settings(environ: Optional[Mapping[str, str]] = None) -> list:
    """Check each required variable without raising.

    Returns:
        List of dicts with 'variable', 'ok' and 'detail' keys, one per
        required variable, in declaration order.
    """
    env = os.environ if environ is None else environ
    results = []

    for name in REQUIRED_VARIABLES:
        value = env.get(name, "").strip()
        if not value:
            results.append({"variable": name, "ok": False, "detail": "not set"})
            continue

        if name == ENV_PRIVATE_KEY_PATH:
            path = os.path.expanduser(value)
            if not os.path.isfile(path):
                results.append({"variable": name, "ok": False,
                                "detail": f"file not found: {path}"})
                continue
            detail = f"exists ({path})"
        elif name == ENV_ISSUER_ID:
            detail = f"set ({value[:8]}...)"
        else:
            detail = f"set ({value})"

        results.append({"variable": name, "ok": True, "detail": detail})

    return results


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        return float(REQUEST_TIMEOUT)
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(
            f"{ENV_REQUEST_TIMEOUT} must be a number of seconds, got {raw!r}",
            variable=ENV_REQUEST_TIMEOUT,
        ) from None
    if value <= 0:
        raise ConfigError(
            f"{ENV_REQUEST_TIMEOUT} must be positive, got {raw!r}",
            variable=ENV_REQUEST_TIMEOUT,
        )
    return value
