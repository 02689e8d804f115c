"""
Settings and the YAML event-type configuration.

The config file decides which event types exist and which fields each form
shows. The codec never looks at it: unknown fields pass through untouched.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

# =============================================================================
# Settings
# =============================================================================
DEFAULT_CONFIG_PATH = Path(__file__).with_name("config.yaml")
CONFIG_PATH = Path(os.environ.get("BABYLOG_CONFIG", str(DEFAULT_CONFIG_PATH)))
DB_PATH = Path(os.environ.get("BABYLOG_DB", "data/babylog.db"))
API_PORT = int(os.environ.get("BABYLOG_PORT", "3001"))

# Query parameter that carries the state token in the app URL
URL_STATE_PARAM = "s"

FIELD_TYPES = ("datetime", "select", "number", "text")


# =============================================================================
# Loading
# =============================================================================
def load_config(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load and sanity-check the YAML config. Raises ConfigError."""
    p = Path(path) if path else CONFIG_PATH
    if not p.exists():
        raise ConfigError(f"Failed to load config: {p} not found")

    try:
        config = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config {p}: {e}") from e

    if not isinstance(config, dict) or not isinstance(config.get("events"), list):
        raise ConfigError(f"Config {p} must be a mapping with an 'events' list")

    for ev in config["events"]:
        if not isinstance(ev, dict) or not ev.get("id"):
            raise ConfigError(f"Config {p}: every event needs an 'id'")
        ev.setdefault("label", str(ev["id"]).title())
        ev.setdefault("fields", [])
        for f in ev["fields"]:
            ftype = f.get("type")
            if ftype not in FIELD_TYPES:
                logger.warning("Event %s field %s has unknown type %r", ev["id"], f.get("id"), ftype)

    return config


def get_event_type_config(config: Optional[Dict[str, Any]], event_type_id: str) -> Optional[Dict[str, Any]]:
    if not config or not config.get("events"):
        return None
    for ev in config["events"]:
        if ev.get("id") == event_type_id:
            return ev
    return None


def event_type_ids(config: Dict[str, Any]) -> List[str]:
    return [str(ev["id"]) for ev in config.get("events", [])]


def event_type_label(config: Optional[Dict[str, Any]], event_type_id: str) -> str:
    ev = get_event_type_config(config, event_type_id)
    if ev:
        return str(ev.get("label") or event_type_id)
    return event_type_id.replace("_", " ").title()


# =============================================================================
# Form helpers
# =============================================================================
def default_form_values(event_type_config: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Initial form values: `default: now` on datetime fields means the current time."""
    out: Dict[str, Any] = {}
    for f in event_type_config.get("fields", []):
        default = f.get("default")
        if f.get("type") == "datetime" and default == "now":
            out[f["id"]] = now or datetime.now().astimezone()
        elif default is not None:
            out[f["id"]] = default
        else:
            out[f["id"]] = None
    return out


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_event_fields(event_type_config: Dict[str, Any], form_data: Dict[str, Any]) -> Dict[str, str]:
    """Return {field_id: message} for every invalid field. Empty dict means valid."""
    errors: Dict[str, str] = {}
    for f in event_type_config.get("fields", []):
        fid = f["id"]
        label = f.get("label", fid)
        value = form_data.get(fid)

        if f.get("required") and _is_blank(value):
            errors[fid] = f"{label} is required"
            continue

        if f.get("type") == "number" and not _is_blank(value):
            try:
                num = float(value)
            except (TypeError, ValueError):
                errors[fid] = f"{label} must be a number"
                continue
            if f.get("min") is not None and num < float(f["min"]):
                errors[fid] = f"{label} must be at least {f['min']}"

        if f.get("type") == "select" and not _is_blank(value):
            allowed = [o.get("value") for o in f.get("options", [])]
            if allowed and value not in allowed:
                errors[fid] = f"{label} must be one of: {', '.join(map(str, allowed))}"

    return errors


def build_event(event_type_config: Dict[str, Any], form_data: Dict[str, Any], event_id: Any) -> Dict[str, Any]:
    """Assemble an event dict from validated form data. Blank optional fields are left out."""
    e: Dict[str, Any] = {"id": event_id, "eventType": event_type_config["id"]}
    for f in event_type_config.get("fields", []):
        value = form_data.get(f["id"])
        if _is_blank(value):
            continue
        if f.get("type") == "number":
            num = float(value)
            value = int(num) if num.is_integer() else num
        e[f["id"]] = value
    e.setdefault("timestamp", datetime.now().astimezone())
    return e
