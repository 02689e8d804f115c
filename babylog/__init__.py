"""babylog: baby event log with shareable URL state."""

from .errors import (
    ConfigError,
    DecryptionError,
    EventNotFoundError,
    InvalidEncryptedTokenError,
    PasswordRequiredError,
    StateCodecError,
)
from .url_state import DecodedState, decode_state, encode_state

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DecodedState",
    "DecryptionError",
    "EventNotFoundError",
    "InvalidEncryptedTokenError",
    "PasswordRequiredError",
    "StateCodecError",
    "decode_state",
    "encode_state",
]
