from datetime import datetime, timezone

import pytest

from babylog.config import (
    DEFAULT_CONFIG_PATH,
    build_event,
    default_form_values,
    event_type_ids,
    event_type_label,
    get_event_type_config,
    load_config,
    validate_event_fields,
)
from babylog.errors import ConfigError


@pytest.fixture
def config():
    return load_config(DEFAULT_CONFIG_PATH)


class TestLoadConfig:
    def test_default_config(self, config):
        assert event_type_ids(config) == ["feeding", "peeing", "pooping"]

    def test_custom_yaml(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("events:\n  - id: feeding\n    label: Feeding\n  - id: sleep\n", encoding="utf-8")
        cfg = load_config(p)

        assert cfg["events"][0]["id"] == "feeding"
        assert cfg["events"][1]["label"] == "Sleep"
        assert cfg["events"][1]["fields"] == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("text", ["events: [unclosed", "just a string", "events: 3", "events:\n  - label: x\n"])
    def test_malformed(self, tmp_path, text):
        p = tmp_path / "config.yaml"
        p.write_text(text, encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(p)


class TestEventTypeConfig:
    def test_lookup(self, config):
        assert get_event_type_config(config, "feeding")["label"] == "Feeding"
        assert get_event_type_config(config, "sleep") is None
        assert get_event_type_config(None, "feeding") is None

    def test_label_fallback(self, config):
        assert event_type_label(config, "pooping") == "Pooping"
        assert event_type_label(config, "tummy_time") == "Tummy Time"


class TestForms:
    def test_defaults(self, config):
        now = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        values = default_form_values(get_event_type_config(config, "feeding"), now)

        assert values == {"timestamp": now, "type": None, "amount": None}

    def test_validation(self, config):
        feeding = get_event_type_config(config, "feeding")

        errors = validate_event_fields(feeding, {"timestamp": None, "type": "", "amount": -5})
        assert set(errors) == {"timestamp", "type", "amount"}
        assert errors["amount"] == "Amount (ml) must be at least 0"

        errors = validate_event_fields(feeding, {"timestamp": "x", "type": "juice", "amount": "lots"})
        assert "must be one of" in errors["type"]
        assert errors["amount"] == "Amount (ml) must be a number"

        assert validate_event_fields(feeding, {"timestamp": "x", "type": "formula", "amount": None}) == {}

    def test_build_event(self, config):
        ts = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        feeding = get_event_type_config(config, "feeding")
        e = build_event(feeding, {"timestamp": ts, "type": "formula", "amount": 120.0}, "ab12")

        assert e == {"id": "ab12", "eventType": "feeding", "timestamp": ts, "type": "formula", "amount": 120}

        pooping = get_event_type_config(config, "pooping")
        e = build_event(pooping, {"timestamp": ts, "consistency": "  "}, 9)
        assert "consistency" not in e
