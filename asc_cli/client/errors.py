"""Exception classes for the App Store Connect client."""


class AppStoreConnectError(Exception):
    """Base exception for all App Store Connect client errors."""

    def __init__(self, message, suggestion=None, **kwargs):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.metadata = kwargs

    def to_dict(self):
        """Convert error to dictionary for JSON output."""
        result = {
            'error': self.__class__.__name__,
            'message': str(self)
        }
        if self.suggestion:
            result['suggestion'] = self.suggestion
        result.update(self.metadata)
        return result


class ConfigError(AppStoreConnectError):
    """Required configuration is missing or invalid."""

    def __init__(self, message, variable=None):
        super().__init__(
            message=message,
            suggestion="Set ASC_ISSUER_ID, ASC_KEY_ID and ASC_PRIVATE_KEY_PATH, "
                       "then run 'asc validate'.",
            variable=variable
        )


class KeyLoadError(AppStoreConnectError):
    """Private key material is unreadable, malformed, or not a P-256 key."""

    def __init__(self, message='Failed to load private key'):
        super().__init__(
            message=message,
            suggestion="Use the AuthKey_<KEY_ID>.p8 file downloaded from "
                       "App Store Connect (PKCS8, EC P-256)."
        )


class AuthenticationError(AppStoreConnectError):
    """A token could not be decoded."""

    def __init__(self, message='Invalid token'):
        super().__init__(message=message)


class SigningError(AppStoreConnectError):
    """The ES256 signature operation failed."""

    def __init__(self, message='Failed to sign token'):
        super().__init__(message=message)


class TransportError(AppStoreConnectError):
    """Network failure, timeout, or cancellation before a response arrived.

    Safe to retry with backoff.
    """

    def __init__(self, message='Request failed', method=None, url=None):
        super().__init__(
            message=message,
            suggestion="Check network connectivity and retry.",
            method=method,
            url=url
        )


class APIError(AppStoreConnectError):
    """The service answered with a status code of 400 or above.

    ``message`` holds the text extracted from the JSON:API error envelope
    (or the raw body); ``str(error)`` prefixes it with the status code.
    """

    def __init__(self, status, message, errors=None):
        super().__init__(message=message, status=status)
        self.status = status
        self.errors = errors or []

    @property
    def retryable(self):
        """Hint for callers: only throttling and server errors are worth retrying."""
        return self.status == 429 or self.status >= 500

    def __str__(self):
        return f"API error ({self.status}): {self.message}"
