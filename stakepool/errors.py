class StakePoolError(Exception):
    """Base class for every error raised by this package."""


class ConfigReadError(StakePoolError, OSError):
    """The configuration text could not be read."""


class ConfigParseError(StakePoolError, ValueError):
    """The configuration text is malformed or a field has the wrong type."""

    def __init__(self, message, key=None):
        self.key = key
        if key:
            message = f"{key}: {message}"
        super().__init__(message)


class DerivationError(StakePoolError, ValueError):
    """No program address could be derived from the given seeds."""


class SignerError(StakePoolError):
    """A signer failed to report its pubkey or to sign a message."""
