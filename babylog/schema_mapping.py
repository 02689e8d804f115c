"""
Field-name mapping between the display schema (full names) and the URL schema.

The short names are part of the token wire format and must never change,
otherwise previously shared links stop decoding.
"""

from __future__ import annotations

from typing import Any, Dict, List

FIELD_MAPPING: Dict[str, str] = {
    "eventType": "t",
    "type": "ty",
    "amount": "a",
    "timestamp": "ts",
    "id": "i",
    "consistency": "c",
}

REVERSE_MAPPING: Dict[str, str] = {short: full for full, short in FIELD_MAPPING.items()}

# Prefix for pass-through keys that would otherwise read back as a short name.
ESCAPE_PREFIX = "~"


def _needs_escape(key: str) -> bool:
    return key in REVERSE_MAPPING or key.startswith(ESCAPE_PREFIX)


def minify_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rename known fields to their short names. Unknown fields keep their name,
    except ones that clash with a short name (or start with ESCAPE_PREFIX),
    which get ESCAPE_PREFIX in front.
    """
    out: Dict[str, Any] = {}
    for key, value in event.items():
        if key in FIELD_MAPPING:
            out[FIELD_MAPPING[key]] = value
        elif _needs_escape(key):
            out[ESCAPE_PREFIX + key] = value
        else:
            out[key] = value
    return out


def expand_event(event: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in event.items():
        if key.startswith(ESCAPE_PREFIX):
            out[key[len(ESCAPE_PREFIX):]] = value
        else:
            out[REVERSE_MAPPING.get(key, key)] = value
    return out


def minify_events(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [minify_event(e) for e in events]


def expand_events(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [expand_event(e) for e in events]
