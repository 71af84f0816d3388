import argparse
import logging
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import structlog

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import reader_gen  # noqa: E402

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def store_schema_path() -> Path:
    return FIXTURES_DIR / "store.json"


@pytest.fixture
def store_registry(store_schema_path: Path) -> reader_gen.SchemaRegistry:
    return reader_gen.load_schema([store_schema_path])


@pytest.fixture
def make_field() -> Callable[..., reader_gen.FieldDefinition]:
    def _make_field(
        name: str,
        type_token: str,
        *,
        items: str | None = None,
        short: str = "",
        long: str = "",
    ) -> reader_gen.FieldDefinition:
        doc = reader_gen.Documentation(short, long) if short or long else None
        return reader_gen.FieldDefinition(
            name=name, type=type_token, items=items, documentation=doc
        )

    return _make_field


@pytest.fixture
def make_table() -> Callable[..., reader_gen.TableDefinition]:
    def _make_table(
        name: str,
        fields: list[reader_gen.FieldDefinition],
        *,
        application: str = "store",
        documentation: reader_gen.Documentation | None = None,
    ) -> reader_gen.TableDefinition:
        return reader_gen.TableDefinition(
            name=name,
            application=application,
            fields=tuple(fields),
            documentation=documentation,
        )

    return _make_table


@pytest.fixture
def make_registry() -> Callable[..., reader_gen.SchemaRegistry]:
    """Registry for application "store" with the given tables and enumerations."""

    def _make_registry(
        tables: tuple[reader_gen.TableDefinition, ...] = (),
        enumerations: tuple[reader_gen.EnumerationDefinition, ...] = (),
        application: str = "store",
    ) -> reader_gen.SchemaRegistry:
        registry = reader_gen.SchemaRegistry()
        registry.add_application(application)
        for enumeration in enumerations:
            registry.add_enumeration(enumeration)
        for table in tables:
            registry.add_table(table)
        return registry

    return _make_registry


@pytest.fixture
def make_args(store_schema_path: Path, tmp_path: Path) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "schema": [store_schema_path],
            "output_dir": tmp_path / "out",
            "package": None,
            "table": None,
            "vector_package": reader_gen.DEFAULT_VECTOR_PACKAGE,
            "strict": False,
            "list_tables": False,
            "log_level": "WARNING",
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo configure_logging() calls made by CLI tests."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
