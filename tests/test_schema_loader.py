import pytest

from site_content import schema


def test_loads_default_schema():
    loaded = schema.load_schema()
    assert loaded.get("title") == "CollectionResponse"
    assert loaded["type"] == "array"


def test_validate_accepts_array_of_objects():
    rows = [{"id": "1", "title": "Hello"}, {}]
    assert schema.validate_rows(rows) == rows
    assert schema.validate_rows([]) == []


def test_validate_rejects_non_array_payload():
    with pytest.raises(ValueError) as excinfo:
        schema.validate_rows({"rows": []})
    assert "<root>" in str(excinfo.value)


def test_validate_reports_offending_row_positions():
    with pytest.raises(ValueError) as excinfo:
        schema.validate_rows([{"id": "1"}, "stray", 3, None, True])
    message = str(excinfo.value)
    assert "1: 'stray' is not of type 'object'" in message
    # Only the first few problems are reported.
    assert message.count("is not of type") == 3
