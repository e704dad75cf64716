import structlog

from idlesettle.backend.logging_config import configure_logging, safe_log_id


def test_safe_log_id_marks_empty_ids() -> None:
    assert safe_log_id("") == "[empty]"
    assert safe_log_id(None) == "[empty]"


def test_safe_log_id_keeps_short_ids() -> None:
    assert safe_log_id("p-1") == "p-1"


def test_safe_log_id_truncates_long_ids() -> None:
    assert safe_log_id("player-123456789") == "player-1..."


def test_safe_log_id_strips_control_characters() -> None:
    assert safe_log_id("a\nb;c d") == "abcd"


def test_configure_logging_accepts_json_mode() -> None:
    configure_logging("debug", json_logs=True)

    assert structlog.is_configured()

    configure_logging("INFO", json_logs=False)
