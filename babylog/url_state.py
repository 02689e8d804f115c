"""
URL state codec.

Turns an ordered event list into a short URL-safe token and back.

Token formats, newest first:

  enc:<salt>.<iv>.<ciphertext>   password-encrypted legacy payload
  {"r": [...], "s": [...]}       compact: minified recent events + day summaries
  {"data": [...], "config": ...} legacy plain payload
  [...]                          bare event list

Unencrypted tokens are base64url(JSON) without padding. Decoding an
unencrypted token never raises: anything broken degrades to an empty state.
The encrypted path is strict and raises StateCodecError subclasses, because
the caller has to decide between asking for the password again and giving up.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from . import encryption
from .errors import InvalidEncryptedTokenError, PasswordRequiredError
from .schema_mapping import expand_event, minify_event
from .summaries import CompressedEvents, compress_events, decompress_events
from .timestamps import coerce_timestamp, compress_timestamp, decompress_timestamp, json_default

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "enc:"


@dataclass
class DecodedState:
    events: List[Dict[str, Any]] = field(default_factory=list)
    config: Optional[Dict[str, Any]] = None


# =============================================================================
# Parsed payloads (format detection)
# =============================================================================
@dataclass
class LegacyPayload:
    data: List[Any]
    config: Optional[Dict[str, Any]]


@dataclass
class CompactPayload:
    recent: List[Any]
    summaries: List[Any]


@dataclass
class BareListPayload:
    events: List[Any]


@dataclass
class EmptyPayload:
    pass


Payload = Union[LegacyPayload, CompactPayload, BareListPayload, EmptyPayload]


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def parse_payload(obj: Any) -> Payload:
    """Classify a decoded JSON value. `data` wins over `r`/`s`; a bare list is last."""
    if isinstance(obj, dict):
        if "data" in obj:
            config = obj.get("config")
            return LegacyPayload(
                data=_as_list(obj.get("data")),
                config=config if isinstance(config, dict) else None,
            )
        if "r" in obj or "s" in obj:
            return CompactPayload(recent=_as_list(obj.get("r")), summaries=_as_list(obj.get("s")))
        return EmptyPayload()
    if isinstance(obj, list):
        return BareListPayload(events=obj)
    return EmptyPayload()


# =============================================================================
# Wire helpers
# =============================================================================
def _to_json(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=json_default)


def encode_base64_utf8(text: str) -> str:
    """UTF-8 text -> base64url without padding."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def decode_base64_utf8(token: str) -> str:
    """Inverse of encode_base64_utf8. Raises on characters outside the alphabet."""
    std = token.replace("-", "+").replace("_", "/")
    std += "=" * (-len(std) % 4)
    return base64.b64decode(std, validate=True).decode("utf-8")


# =============================================================================
# Materializing events
# =============================================================================
def _normalize_events(raw: List[Any], now: Optional[datetime]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for e in raw:
        if not isinstance(e, dict):
            continue
        out.append({**e, "timestamp": coerce_timestamp(e.get("timestamp"), now)})
    return out


def _expand_recent(raw: List[Any], now: Optional[datetime]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for m in raw:
        if not isinstance(m, dict):
            continue
        e = expand_event(m)
        e["timestamp"] = decompress_timestamp(e.get("timestamp"), now)
        out.append(e)
    return out


def materialize(payload: Payload, now: Optional[datetime] = None) -> DecodedState:
    if isinstance(payload, LegacyPayload):
        return DecodedState(events=_normalize_events(payload.data, now), config=payload.config)
    if isinstance(payload, CompactPayload):
        compressed = CompressedEvents(
            recent=_expand_recent(payload.recent, now),
            summaries=[s for s in payload.summaries if isinstance(s, dict)],
        )
        return DecodedState(events=decompress_events(compressed))
    if isinstance(payload, BareListPayload):
        return DecodedState(events=_normalize_events(payload.events, now))
    return DecodedState()


# =============================================================================
# Public API
# =============================================================================
def encode_compact(events: List[Dict[str, Any]], now: Optional[datetime] = None) -> str:
    compressed = compress_events(events, now)
    recent = [
        minify_event({**e, "timestamp": compress_timestamp(e["timestamp"])})
        for e in compressed.recent
    ]
    return encode_base64_utf8(_to_json({"r": recent, "s": compressed.summaries}))


def encode_legacy(events: List[Dict[str, Any]], config: Optional[Dict[str, Any]] = None) -> str:
    """Plain `{data, config}` token. Still decoded, no longer produced by the app."""
    return encode_base64_utf8(_to_json({"data": events or [], "config": config or None}))


def encode_encrypted(events: List[Dict[str, Any]], password: str) -> str:
    plaintext = _to_json({"data": events or [], "config": None})
    return ENCRYPTED_PREFIX + encryption.encrypt(plaintext, password)


def encode_state(
    events: List[Dict[str, Any]],
    password: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Encode events into a URL-safe token.

    Without a password the compact format is used (recent events at 15-minute
    precision, older days as counts). With a password the full events are
    encrypted, so nothing is lost.
    """
    if password:
        return encode_encrypted(events, password)
    return encode_compact(events or [], now)


def is_encrypted_token(token: Optional[str]) -> bool:
    return bool(token) and token.startswith(ENCRYPTED_PREFIX)


def decode_encrypted(token: str, password: Optional[str], now: Optional[datetime] = None) -> DecodedState:
    body = token[len(ENCRYPTED_PREFIX):] if token.startswith(ENCRYPTED_PREFIX) else token
    if body.count(".") != 2:
        raise InvalidEncryptedTokenError(
            f"Invalid encrypted data format: expected 3 segments, got {body.count('.') + 1}"
        )
    if not password:
        raise PasswordRequiredError("This link is password protected")

    plaintext = encryption.decrypt(body, password)
    try:
        obj = json.loads(plaintext)
    except ValueError as e:
        raise InvalidEncryptedTokenError("Decrypted payload is not JSON") from e
    return materialize(parse_payload(obj), now)


def decode_state(
    token: Optional[str],
    password: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DecodedState:
    """
    Decode a token produced by any format version.

    Empty input and any failure on the unencrypted path give an empty state.
    Encrypted tokens raise InvalidEncryptedTokenError, PasswordRequiredError
    or DecryptionError.
    """
    if not token:
        return DecodedState()

    if is_encrypted_token(token):
        return decode_encrypted(token, password, now)

    try:
        obj = json.loads(decode_base64_utf8(token))
        return materialize(parse_payload(obj), now)
    except Exception as e:  # malformed links degrade to a fresh start
        logger.warning("Error decoding state: %s", e)
        return DecodedState()


# =============================================================================
# Persistence hooks
# =============================================================================
def get_state_from_url(
    read_token: Callable[[], Optional[str]],
    password: Optional[str] = None,
) -> DecodedState:
    return decode_state(read_token(), password)


def update_url_state(
    write_token: Callable[[str], None],
    events: List[Dict[str, Any]],
    password: Optional[str] = None,
) -> str:
    token = encode_state(events, password)
    write_token(token)
    return token
