from __future__ import annotations

from pyfeeding._redact import redact_for_log


def test_redact_for_log_masks_request_headers() -> None:
    headers = {
        "apikey": "anon-key",
        "Authorization": "Bearer anon-key",
        "accept": "application/json",
    }

    assert redact_for_log(headers) == {
        "apikey": "<redacted>",
        "Authorization": "<redacted>",
        "accept": "application/json",
    }


def test_redact_for_log_masks_nested_body_fields() -> None:
    body = [{"date": "2024-01-02", "settings": {"mqtt_password": "pw", "caretaker": "Dani"}}]

    assert redact_for_log(body) == [{"date": "2024-01-02", "settings": {"mqtt_password": "<redacted>", "caretaker": "Dani"}}]


def test_redact_for_log_truncates_long_strings() -> None:
    redacted = redact_for_log({"value": "x" * 600}, max_string=10)

    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_passes_scalars_through() -> None:
    assert redact_for_log(None) is None
    assert redact_for_log(3) == 3
    assert redact_for_log("short") == "short"
