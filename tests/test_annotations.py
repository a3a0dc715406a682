import json

import pytest

from dremops.core.annotations import annotations_from_dict, load_annotations


def test_annotations_from_dict_parses_tables():
    parsed = annotations_from_dict(
        {
            "tables": {
                "Sales.orders": {
                    "description": "Orders",
                    "tags": ["finance", "pii"],
                    "columns": {"id": "order id", "amount": ""},
                },
                "Sales.broken": "not an object",
            }
        }
    )

    assert list(parsed) == ["Sales.orders"]
    orders = parsed["Sales.orders"]
    assert orders.description == "Orders"
    assert orders.tags == ("finance", "pii")
    assert orders.column_notes == {"id": "order id"}


def test_annotations_from_dict_ignores_malformed_columns():
    parsed = annotations_from_dict({"tables": {"t": {"columns": ["id"]}}})

    assert parsed["t"].column_notes == {}


@pytest.mark.parametrize(
    ("tags", "expected"),
    [("pii", ("pii",)), ("", ()), ({"pii": True}, ()), (["pii", "", 7], ("pii", "7"))],
)
def test_annotations_from_dict_normalizes_tags(tags, expected):
    parsed = annotations_from_dict({"tables": {"t": {"tags": tags}}})

    assert parsed["t"].tags == expected


def test_annotations_from_dict_rejects_non_mapping_tables():
    with pytest.raises(ValueError, match="tables"):
        annotations_from_dict({"tables": ["Sales.orders"]})


def test_load_annotations_reads_json_file(tmp_path):
    path = tmp_path / "notes.json"
    path.write_text(json.dumps({"tables": {"s.t": {"description": "d"}}}))

    assert load_annotations(path)["s.t"].description == "d"


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_load_annotations_rejects_invalid_files(tmp_path, content: str):
    path = tmp_path / "notes.json"
    path.write_text(content)

    with pytest.raises(ValueError, match="Invalid annotations file"):
        load_annotations(path)
