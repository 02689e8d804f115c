"""Custom exceptions"""


class StateCodecError(Exception):
    """Base class for errors surfaced by the state codec's strict (encrypted) path."""


class InvalidEncryptedTokenError(StateCodecError):
    """Raised when an encrypted token is not `salt.iv.ciphertext` or a segment is not base64url."""


class PasswordRequiredError(StateCodecError):
    """Raised when an encrypted token is decoded without a password."""


class DecryptionError(StateCodecError):
    """Raised when authentication fails: wrong password or tampered token."""


class ConfigError(Exception):
    """Raised when the event-type config file is missing or malformed."""


class EventNotFoundError(Exception):
    """Raised when a stored event id does not exist."""
