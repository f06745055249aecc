from datetime import date, datetime
import json

from file_manager.util.json import json_dumps_safe, make_json_safe


def test_make_json_safe_converts_nested_dates():
    records = [
        {"filename": "a.txt", "created_at": datetime(2024, 3, 1, 12, 30, 5)},
        {"filename": "b.txt", "tags": ("x", "y"), "day": date(2024, 3, 2)},
    ]

    assert make_json_safe(records) == [
        {"filename": "a.txt", "created_at": "2024-03-01T12:30:05"},
        {"filename": "b.txt", "tags": ["x", "y"], "day": "2024-03-02"},
    ]


def test_make_json_safe_stringifies_keys():
    assert make_json_safe({1: None}) == {"1": None}


def test_json_dumps_safe_passes_options_through():
    text = json_dumps_safe({"when": datetime(2024, 1, 1)}, indent=2)
    assert "\n" in text
    assert json.loads(text) == {"when": "2024-01-01T00:00:00"}
