from dremops.core.annotations import TableAnnotation
from dremops.core.context import DataContext, assemble, render_markdown, summarize
from dremops.core.nodes import Field, FieldType, NodeKind
from dremops.core.selection import ChildDataset, SelectedItem


def _field(name: str, type_name: str, precision=None, scale=None) -> Field:
    return Field(name=name, type=FieldType(name=type_name, precision=precision, scale=scale))


def _table(path: str, *fields: Field, **kwargs) -> SelectedItem:
    return SelectedItem(
        id=path,
        path=path,
        kind=NodeKind.DATASET,
        columns=fields,
        columns_loaded=True,
        **kwargs,
    )


def _container(path: str, *datasets: ChildDataset, container_kind="SOURCE") -> SelectedItem:
    return SelectedItem(
        id=path,
        path=path,
        kind=NodeKind.CONTAINER,
        container_kind=container_kind,
        child_datasets=datasets,
        child_datasets_loaded=True,
    )


def test_dataset_columns_become_table_context():
    item = _table("s.t", _field("a", "int"), _field("b", "string"))

    payload = assemble([item]).to_payload()

    assert payload == {
        "tables": [
            {
                "path": "s.t",
                "columns": [{"name": "a", "type": "int"}, {"name": "b", "type": "string"}],
            }
        ],
        "containers": [],
    }


def test_field_types_render_precision_and_scale():
    item = _table(
        "s.t",
        _field("price", "DECIMAL", 10, 2),
        _field("code", "VARCHAR", 36),
        _field("ok", "BOOLEAN"),
    )

    columns = assemble([item]).tables[0].columns

    assert [c.type for c in columns] == ["DECIMAL(10,2)", "VARCHAR(36)", "BOOLEAN"]


def test_loading_dataset_contributes_empty_columns():
    pending = SelectedItem(id="x", path="s.t", kind=NodeKind.DATASET, columns_loading=True)

    context = assemble([pending])

    assert context.tables[0].path == "s.t"
    assert context.tables[0].columns == ()


def test_container_context_uses_child_datasets_and_kind():
    item = _container(
        "Samples",
        ChildDataset(path="Samples.trips", columns=(_field("fare", "DOUBLE"),)),
    )
    untyped = _container("Other", container_kind=None)

    payload = assemble([item, untyped]).to_payload()

    assert payload["tables"] == []
    assert payload["containers"] == [
        {
            "path": "Samples",
            "type": "SOURCE",
            "childDatasets": [
                {"path": "Samples.trips", "columns": [{"name": "fare", "type": "DOUBLE"}]}
            ],
        },
        {"path": "Other", "type": "CONTAINER", "childDatasets": []},
    ]


def test_assemble_is_pure_and_keeps_selection_order():
    selection = [
        _container("Samples"),
        _table("s.t2", _field("x", "int")),
        _table("s.t1", _field("y", "int")),
    ]

    first = assemble(selection)
    second = assemble(selection)

    assert first == second
    assert [t.path for t in first.tables] == ["s.t2", "s.t1"]


def test_annotations_add_description_tags_and_column_notes():
    notes = {
        "s.t": TableAnnotation(
            description="Orders placed online",
            tags=("finance",),
            column_notes={"a": "order id"},
        ),
        "Samples.trips": TableAnnotation(description="NYC taxi trips"),
    }
    selection = [
        _table("s.t", _field("a", "int"), _field("b", "string")),
        _container("Samples", ChildDataset(path="Samples.trips")),
    ]

    payload = assemble(selection, notes).to_payload()

    assert payload["tables"][0] == {
        "path": "s.t",
        "columns": [
            {"name": "a", "type": "int", "note": "order id"},
            {"name": "b", "type": "string"},
        ],
        "description": "Orders placed online",
        "tags": ["finance"],
    }
    assert payload["containers"][0]["childDatasets"][0]["description"] == "NYC taxi trips"


def test_summarize_counts_columns_across_tables_and_containers():
    context = assemble(
        [
            _table("s.t", _field("a", "int"), _field("b", "int")),
            _container("Samples", ChildDataset(path="Samples.x", columns=(_field("c", "int"),))),
        ]
    )

    assert summarize(context) == {"tables": 1, "containers": 1, "columns": 3}


def test_render_markdown_empty_context():
    assert render_markdown(DataContext()) == "No data context selected."


def test_render_markdown_lists_tables_and_containers():
    context = assemble(
        [
            _table("s.t", _field("a", "int")),
            _table("s.empty"),
            _container("Samples", ChildDataset(path="Samples.x", columns=(_field("c", "int"),))),
            _container("Lake", container_kind="FOLDER"),
        ]
    )

    text = render_markdown(context)

    assert text.startswith("## Available Data Schema\n")
    assert "### Selected Tables" in text
    assert "#### `s.t`\n| Column | Type |\n|--------|------|\n| a | int |" in text
    assert "#### `s.empty`\n(Column information not available)" in text
    assert "### Selected Folders/Sources" in text
    assert "#### SOURCE: `Samples`" in text
    assert "Contains 1 dataset(s):" in text
    assert "##### `Samples.x`" in text
    assert "#### FOLDER: `Lake`\n\n(No datasets found or loading...)" in text


def test_render_markdown_adds_note_column_only_when_notes_exist():
    notes = {"s.t": TableAnnotation(column_notes={"a": "primary key"})}
    context = assemble([_table("s.t", _field("a", "int"), _field("b", "int"))], notes)

    text = render_markdown(context)

    assert "| Column | Type | Note |" in text
    assert "| a | int | primary key |" in text
    assert "| b | int |  |" in text
