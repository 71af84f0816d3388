import json
from pathlib import Path

import pytest

import reader_gen
from reader_gen import SymbolKind


def _write_schema(tmp_path: Path, document: object, name: str = "schema.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def _document(**overrides: object) -> dict[str, object]:
    document: dict[str, object] = {
        "application": "store",
        "tables": [{"name": "Item", "fields": [{"name": "sku", "type": "String"}]}],
        "enumerations": [],
    }
    document.update(overrides)
    return document


# ===--- Loading ---=== #


def test_load_schema_preserves_table_and_field_order(store_registry) -> None:
    tables = store_registry.tables()

    assert [t.name for t in tables] == ["Item", "Color", "Variation"]
    assert [f.name for f in tables[0].fields] == [
        "SKU",
        "title",
        "tags",
        "condition",
        "resale",
        "color",
        "variations",
        "notes",
    ]
    assert all(t.application == "store" for t in tables)


def test_load_schema_reads_documentation(store_registry) -> None:
    item = store_registry.table("Item")

    assert item.documentation == reader_gen.Documentation(
        short="is a product offered in the store."
    )
    assert item.fields[0].documentation.short == "is the stock keeping unit."
    assert item.fields[1].documentation is None


def test_load_schema_reads_enumerations(store_registry) -> None:
    (condition,) = store_registry.enumerations()

    assert condition.items == ("New", "Used", "Refurbished")
    assert condition.groups == {"Resale": ("Used", "Refurbished")}


def test_load_schema_records_source_names(store_registry) -> None:
    assert store_registry.sources == ["store.json"]


def test_string_documentation_is_short_text(tmp_path: Path) -> None:
    document = _document(tables=[{"name": "Item", "documentation": "an item"}])

    registry = reader_gen.load_schema([_write_schema(tmp_path, document)])

    assert registry.table("Item").documentation == reader_gen.Documentation("an item")


def test_multiple_files_share_one_registry(tmp_path: Path) -> None:
    store = _write_schema(tmp_path, _document(), "store.json")
    billing = _write_schema(
        tmp_path,
        _document(application="billing", tables=[{"name": "Invoice"}]),
        "billing.json",
    )

    registry = reader_gen.load_schema([store, billing])

    assert registry.applications() == ["store", "billing"]
    assert [t.name for t in registry.tables("billing")] == ["Invoice"]
    assert registry.sources == ["store.json", "billing.json"]


@pytest.mark.parametrize(
    "document",
    [
        [],
        {"tables": []},
        _document(application="my store"),
        _document(tables={}),
        _document(tables=[{"name": "Item", "fields": [{"name": "tags", "type": "Vector"}]}]),
        _document(tables=[{"name": "Item", "fields": [{"name": "unit-price", "type": "String"}]}]),
        _document(tables=[{"name": "Item", "fields": [{"name": "sku", "type": ""}]}]),
        _document(tables=[{"name": "Item", "fields": [{"name": "sku"}]}]),
        _document(tables=[{"name": "Item", "fields": [{"name": "sku", "type": "String", "documentation": 3}]}]),
        _document(
            tables=[
                {
                    "name": "Item",
                    "fields": [
                        {"name": "sku", "type": "String"},
                        {"name": "Sku", "type": "String"},
                    ],
                }
            ]
        ),
        _document(enumerations=[{"name": "Condition", "items": ["New"], "groups": {"Resale": ["Used"]}}]),
        _document(enumerations=[{"name": "Item", "items": ["New"]}]),
        _document(enumerations=[{"name": "Condition", "items": ["New"], "groups": {"Condition": ["New"]}}]),
    ],
    ids=[
        "not-an-object",
        "missing-application",
        "bad-application",
        "tables-not-a-list",
        "vector-without-items",
        "bad-field-name",
        "empty-type",
        "missing-type",
        "bad-documentation",
        "duplicate-accessor",
        "group-member-not-an-item",
        "enumeration-clashes-with-table",
        "group-clashes-with-enumeration",
    ],
)
def test_load_schema_rejects_malformed_documents(tmp_path: Path, document: object) -> None:
    path = _write_schema(tmp_path, document)

    with pytest.raises(reader_gen.SchemaError):
        reader_gen.load_schema([path])


def test_load_schema_rejects_non_utf8_bytes(tmp_path: Path) -> None:
    path = tmp_path / "latin1.json"
    path.write_bytes(b'{"application": "store\xff", "tables": []}')

    with pytest.raises(reader_gen.SchemaError, match="latin1.json: not valid UTF-8"):
        reader_gen.load_schema([path])


def test_load_schema_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(reader_gen.SchemaError, match="broken.json"):
        reader_gen.load_schema([path])


def test_load_schema_missing_file_raises_os_error(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        reader_gen.load_schema([tmp_path / "missing.json"])


# ===--- Resolution ---=== #


def test_resolve_table(store_registry) -> None:
    ref = store_registry.resolve("store", "Color")

    assert ref.kind is SymbolKind.TABLE
    assert ref.target_id == "Color"
    assert ref.parent_id is None


def test_resolve_enumeration_group_reports_parent(store_registry) -> None:
    ref = store_registry.resolve("store", "Resale")

    assert ref.kind is SymbolKind.ENUMERATION_GROUP
    assert ref.parent_id == "Condition"


def test_resolve_enumeration_name_is_its_own_group(store_registry) -> None:
    ref = store_registry.resolve("store", "Condition")

    assert ref.kind is SymbolKind.ENUMERATION_GROUP
    assert ref.parent_id == "Condition"


def test_resolve_unknown_token_is_unresolved(store_registry) -> None:
    ref = store_registry.resolve("store", "Markdown")

    assert ref.kind is SymbolKind.UNRESOLVED
    assert ref.target_id == "Markdown"


def test_resolve_is_scoped_to_application(tmp_path: Path) -> None:
    billing = _write_schema(
        tmp_path,
        _document(application="billing", tables=[{"name": "Invoice"}]),
        "billing.json",
    )
    registry = reader_gen.load_schema([_write_schema(tmp_path, _document()), billing])

    assert registry.resolve("store", "Invoice").kind is SymbolKind.UNRESOLVED
    assert registry.resolve("billing", "Invoice").kind is SymbolKind.TABLE


@pytest.mark.parametrize("token", ["", "store/Color", "Color Code", "9Color"])
def test_resolve_malformed_token_raises(store_registry, token: str) -> None:
    with pytest.raises(reader_gen.ResolutionError):
        store_registry.resolve("store", token)


def test_resolve_unknown_application_raises(store_registry) -> None:
    with pytest.raises(reader_gen.ResolutionError, match="warehouse"):
        store_registry.resolve("warehouse", "Color")


def test_table_lookup_by_application(store_registry) -> None:
    assert store_registry.table("Item", "store").name == "Item"
    assert store_registry.table("Item", "billing") is None
    assert store_registry.table("Nope") is None
