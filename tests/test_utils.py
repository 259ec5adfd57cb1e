from unittest.mock import patch

from hindsight.utils import format_duration, setup_logging, spell_url


def test_spell_url_default_template():
    assert spell_url(133) == "https://www.wowhead.com/spell=133"


def test_spell_url_template_from_env(monkeypatch):
    monkeypatch.setenv(
        "HINDSIGHT_AGGREGATION__SPELL_URL_TEMPLATE", "https://db.example/s/{spell_id}",
    )
    assert spell_url(5) == "https://db.example/s/5"


def test_format_duration():
    assert format_duration(0) == "0:00"
    assert format_duration(65.9) == "1:05"
    assert format_duration(600) == "10:00"


def test_format_duration_negative_clamped():
    assert format_duration(-3) == "0:00"


def test_setup_logging_uses_settings_level(monkeypatch):
    monkeypatch.setenv("HINDSIGHT_LOG_LEVEL", "warning")
    with patch("hindsight.utils.logging.basicConfig") as basic:
        setup_logging()
    assert basic.call_args.kwargs["level"] == "WARNING"


def test_setup_logging_explicit_level():
    with patch("hindsight.utils.logging.basicConfig") as basic:
        setup_logging("debug")
    assert basic.call_args.kwargs["level"] == "DEBUG"
