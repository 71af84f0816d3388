"""Go reader-interface generator for table schemas.

Generates read-only `<Table>Reader` interfaces, plus their
`Vector<Table>Reader` companions, from a JSON table schema.
Produces one `<table>_reader.go` file per table.

Usage:
    python reader_gen.py --schema schema/store.json --output-dir generated
"""

import argparse
import io
import json
import logging
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Generic, Protocol, TextIO, TypeVar

import structlog

TOOL_NAME = "table-reader-gen"
DEFAULT_OUTPUT_DIR = Path("generated")
DEFAULT_VECTOR_PACKAGE = "github.com/nebtex/hybrids/golang/hybrids"
DEFAULT_INDENT = "    "
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


# ===--- Errors ---=== #


class GenerationError(Exception):
    """Base class for failures that abort a generation pass."""


class ResolutionError(GenerationError):
    """The symbol resolver could not process a type token."""


class RenderError(GenerationError):
    """An accessor or interface signature could not be rendered."""


class UnresolvedFieldError(GenerationError):
    """Raised in strict mode when a field has no producible accessor."""

    def __init__(self, table: str, field_name: str, token: str, kind: "SymbolKind"):
        super().__init__(
            f"Field {table}.{field_name} has type {token!r} ({kind.value}) "
            "with no accessor shape"
        )
        self.table = table
        self.field_name = field_name
        self.token = token
        self.kind = kind


class SchemaError(ValueError):
    """The schema document is malformed."""


class VectorInvalidIndexError(IndexError):
    def __init__(self, index: int, length: int):
        super().__init__(f"index {index} out of range for vector of length {length}")
        self.index = index
        self.length = length


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    schema_paths: tuple[Path, ...]
    output_dir: Path
    package: str | None
    tables: tuple[str, ...]
    vector_package: str
    strict: bool
    log_level: str


@dataclass(frozen=True)
class DiscoveryConfig:
    schema_paths: tuple[Path, ...]
    tables: tuple[str, ...]
    log_level: str


VALID_ERROR_CODES = {
    "MISSING_SCHEMA",
    "PATH_NOT_FOUND",
    "INVALID_PACKAGE_NAME",
    "INVALID_TABLE_NAME",
    "INVALID_VECTOR_PACKAGE",
    "UNKNOWN_TABLE",
    "AMBIGUOUS_PACKAGE",
    "NO_TABLES",
    "DUPLICATE_TABLE",
}
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_GO_PACKAGE_RE = re.compile(r"^[a-z_][a-z0-9_]*$")
_IMPORT_PATH_RE = re.compile(r"^[A-Za-z0-9._~\-]+(/[A-Za-z0-9._~\-]+)*$")
GO_KEYWORDS = {
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type",
    "var",
}


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def validate_path_exists(path: Path, flag: str) -> Path:
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        "Provide an existing path for this flag.",
    )


def validate_package_name(name: str) -> str:
    if _GO_PACKAGE_RE.match(name) and name not in GO_KEYWORDS:
        return name
    raise ConfigError(
        "INVALID_PACKAGE_NAME",
        f"Invalid Go package name: {name}",
        "Use a lower-case identifier that is not a Go keyword (for example store).",
    )


def validate_table_name(name: str) -> str:
    if _IDENTIFIER_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_TABLE_NAME",
        f"Invalid table name: {name}",
        "Table names are identifiers such as Item or OrderLine.",
    )


def validate_vector_package(path: str) -> str:
    qualifier = path.rsplit("/", 1)[-1]
    if _IMPORT_PATH_RE.match(path) and _IDENTIFIER_RE.match(qualifier):
        return path
    raise ConfigError(
        "INVALID_VECTOR_PACKAGE",
        f"Invalid vector package import path: {path}",
        "The last path segment must be the package name, "
        f"as in {DEFAULT_VECTOR_PACKAGE}.",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=TOOL_NAME, description="Generate Go reader interfaces for schema tables"
    )

    parser.add_argument("--schema", type=Path, action="append", default=None)
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)
    parser.add_argument("--package", type=str, default=None)
    parser.add_argument("--table", type=str, action="append", default=None)
    parser.add_argument("--vector-package", type=str, default=DEFAULT_VECTOR_PACKAGE)
    parser.add_argument("--strict", action="store_true", default=False)
    parser.add_argument("--list-tables", action="store_true", default=False)
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, default="WARNING"
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    if not args.schema:
        raise ConfigError(
            "MISSING_SCHEMA",
            "--schema is required.",
            "Pass at least one schema file: --schema path/to/schema.json",
        )

    schema_paths = tuple(validate_path_exists(p, "--schema") for p in args.schema)
    tables = tuple(validate_table_name(name) for name in args.table or ())

    if args.list_tables:
        return DiscoveryConfig(
            schema_paths=schema_paths, tables=tables, log_level=args.log_level
        )

    package = None if args.package is None else validate_package_name(args.package)
    return GenerateConfig(
        schema_paths=schema_paths,
        output_dir=args.output_dir,
        package=package,
        tables=tables,
        vector_package=validate_vector_package(args.vector_package),
        strict=args.strict,
        log_level=args.log_level,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Logging ---=== #

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(level: str = "WARNING") -> None:
    """Route structlog events through stdlib logging to stderr.

    stdout is reserved for progress lines and the summary report.
    """
    log_level = _LEVEL_MAP.get(level.upper(), logging.WARNING)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=shared_processors,
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


# ===--- Schema model ---=== #

SCALAR_STRING = "String"
VECTOR = "Vector"
RESERVED_TYPE_TOKENS = frozenset({SCALAR_STRING, VECTOR})


@dataclass(frozen=True)
class Documentation:
    short: str = ""
    long: str = ""


@dataclass(frozen=True)
class FieldDefinition:
    """One table field.

    Attributes:
        name: Field identifier. Capitalized, it becomes the accessor name.
        type: Raw type token: "String", "Vector", or the name of another
            schema entity.
        items: Element type token. Required when type is "Vector".
        documentation: Optional short/long text pair.
    """

    name: str
    type: str
    items: str | None = None
    documentation: Documentation | None = None


@dataclass(frozen=True)
class TableDefinition:
    """A schema table. Field order is the accessor emission order."""

    name: str
    application: str
    fields: tuple[FieldDefinition, ...] = ()
    documentation: Documentation | None = None


@dataclass(frozen=True)
class EnumerationDefinition:
    """An enumeration and its named groups (group name -> member items)."""

    name: str
    application: str
    items: tuple[str, ...] = ()
    groups: dict[str, tuple[str, ...]] = field(default_factory=dict)
    documentation: Documentation | None = None


# ===--- Symbol resolution ---=== #


class SymbolKind(Enum):
    TABLE = "Table"
    ENUMERATION_GROUP = "EnumerationGroup"
    UNRESOLVED = "Unresolved"


@dataclass(frozen=True)
class ResolvedTypeReference:
    """Result of resolving a non-reserved type token.

    Attributes:
        kind: Which schema entity the token names, if any.
        target_id: The resolved entity name (the token itself when unresolved).
        parent_id: Owning enumeration. Only set for ENUMERATION_GROUP.
    """

    kind: SymbolKind
    target_id: str
    parent_id: str | None = None


class SymbolResolver(Protocol):
    def resolve(self, application: str, token: str) -> ResolvedTypeReference: ...


class SchemaRegistry:
    """In-memory table container and symbol resolver.

    Symbols are namespaced per application. Within one application, table
    names, enumeration names and enumeration group names share a single
    namespace. Read-only once loading is done.
    """

    def __init__(self) -> None:
        self._symbols: dict[str, set[str]] = {}
        self._tables: dict[str, dict[str, TableDefinition]] = {}
        self._enumerations: dict[str, dict[str, EnumerationDefinition]] = {}
        self._groups: dict[str, dict[str, str]] = {}
        self.sources: list[str] = []

    def _claim(self, application: str, name: str) -> None:
        names = self._symbols.setdefault(application, set())
        if name in names:
            raise SchemaError(
                f"Duplicate symbol {name!r} in application {application!r}"
            )
        names.add(name)

    def add_application(self, application: str) -> None:
        self._symbols.setdefault(application, set())

    def add_table(self, table: TableDefinition) -> None:
        self._claim(table.application, table.name)
        self._tables.setdefault(table.application, {})[table.name] = table

    def add_enumeration(self, enumeration: EnumerationDefinition) -> None:
        app = enumeration.application
        self._claim(app, enumeration.name)
        for group in enumeration.groups:
            self._claim(app, group)
            self._groups.setdefault(app, {})[group] = enumeration.name
        self._enumerations.setdefault(app, {})[enumeration.name] = enumeration

    def applications(self) -> list[str]:
        return list(self._symbols)

    def tables(self, application: str | None = None) -> list[TableDefinition]:
        """Return tables in load order, optionally for one application."""
        if application is not None:
            return list(self._tables.get(application, {}).values())
        return [t for by_name in self._tables.values() for t in by_name.values()]

    def enumerations(
        self, application: str | None = None
    ) -> list[EnumerationDefinition]:
        if application is not None:
            return list(self._enumerations.get(application, {}).values())
        return [e for by_name in self._enumerations.values() for e in by_name.values()]

    def table(self, name: str, application: str | None = None) -> TableDefinition | None:
        apps = [application] if application is not None else list(self._tables)
        for app in apps:
            table = self._tables.get(app, {}).get(name)
            if table is not None:
                return table
        return None

    def resolve(self, application: str, token: str) -> ResolvedTypeReference:
        """Resolve a type token within an application.

        An enumeration name resolves as the implicit group of all its items,
        so its parent is the enumeration itself.

        Raises:
            ResolutionError: If the token is not an identifier or the
                application is unknown.
        """
        if not token or not _IDENTIFIER_RE.match(token):
            raise ResolutionError(
                f"Malformed type token {token!r} in application {application!r}"
            )
        if application not in self._symbols:
            raise ResolutionError(f"Unknown application {application!r}")

        if token in self._tables.get(application, {}):
            return ResolvedTypeReference(SymbolKind.TABLE, token)
        if token in self._enumerations.get(application, {}):
            return ResolvedTypeReference(
                SymbolKind.ENUMERATION_GROUP, token, parent_id=token
            )
        parent = self._groups.get(application, {}).get(token)
        if parent is not None:
            return ResolvedTypeReference(
                SymbolKind.ENUMERATION_GROUP, token, parent_id=parent
            )
        return ResolvedTypeReference(SymbolKind.UNRESOLVED, token)


# ===--- Schema loading ---=== #


def _require_identifier(value: object, where: str) -> str:
    if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
        raise SchemaError(f"{where}: expected an identifier, got {value!r}")
    return value


def parse_documentation(raw: object, where: str) -> Documentation | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return Documentation(short=raw)
    if not isinstance(raw, dict):
        raise SchemaError(f"{where}: documentation must be a string or an object")
    short = raw.get("short", "")
    long = raw.get("long", "")
    if not isinstance(short, str) or not isinstance(long, str):
        raise SchemaError(f"{where}: documentation short/long must be strings")
    return Documentation(short=short, long=long)


def parse_field(raw: object, where: str) -> FieldDefinition:
    if not isinstance(raw, dict):
        raise SchemaError(f"{where}: field must be an object")
    name = raw.get("name")
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(capitalize(name)):
        raise SchemaError(f"{where}: invalid field name {name!r}")
    where = f"{where} ({name})"

    type_token = raw.get("type")
    if not isinstance(type_token, str) or not type_token:
        raise SchemaError(f"{where}: field type must be a non-empty string")
    items = raw.get("items")
    if items is not None and not isinstance(items, str):
        raise SchemaError(f"{where}: items must be a string")
    if type_token == VECTOR and not items:
        raise SchemaError(f"{where}: vector fields require items")

    return FieldDefinition(
        name=name,
        type=type_token,
        items=items,
        documentation=parse_documentation(raw.get("documentation"), where),
    )


def parse_table(raw: object, application: str, where: str) -> TableDefinition:
    if not isinstance(raw, dict):
        raise SchemaError(f"{where}: table must be an object")
    name = _require_identifier(raw.get("name"), f"{where} name")
    where = f"{where} ({name})"

    raw_fields = raw.get("fields", [])
    if not isinstance(raw_fields, list):
        raise SchemaError(f"{where}: fields must be a list")
    fields = tuple(
        parse_field(f, f"{where} field {i}") for i, f in enumerate(raw_fields)
    )

    seen: set[str] = set()
    for f in fields:
        accessor = capitalize(f.name)
        if accessor in seen:
            raise SchemaError(f"{where}: duplicate accessor {accessor!r}")
        seen.add(accessor)

    return TableDefinition(
        name=name,
        application=application,
        fields=fields,
        documentation=parse_documentation(raw.get("documentation"), where),
    )


def parse_enumeration(
    raw: object, application: str, where: str
) -> EnumerationDefinition:
    if not isinstance(raw, dict):
        raise SchemaError(f"{where}: enumeration must be an object")
    name = _require_identifier(raw.get("name"), f"{where} name")
    where = f"{where} ({name})"

    raw_items = raw.get("items", [])
    if not isinstance(raw_items, list):
        raise SchemaError(f"{where}: items must be a list")
    items = tuple(_require_identifier(item, f"{where} item") for item in raw_items)

    raw_groups = raw.get("groups", {})
    if not isinstance(raw_groups, dict):
        raise SchemaError(f"{where}: groups must be an object")
    groups: dict[str, tuple[str, ...]] = {}
    for group_name, members in raw_groups.items():
        _require_identifier(group_name, f"{where} group")
        if not isinstance(members, list):
            raise SchemaError(f"{where} group {group_name}: members must be a list")
        for member in members:
            if member not in items:
                raise SchemaError(
                    f"{where} group {group_name}: unknown item {member!r}"
                )
        groups[group_name] = tuple(members)

    return EnumerationDefinition(
        name=name,
        application=application,
        items=items,
        groups=groups,
        documentation=parse_documentation(raw.get("documentation"), where),
    )


def register_schema_document(
    registry: SchemaRegistry, data: object, source: str
) -> None:
    """Validate one decoded schema document and add its symbols to registry.

    Raises:
        SchemaError: On any structural problem or duplicate symbol.
    """
    if not isinstance(data, dict):
        raise SchemaError(f"{source}: schema document must be an object")
    application = _require_identifier(data.get("application"), f"{source} application")

    raw_tables = data.get("tables", [])
    raw_enums = data.get("enumerations", [])
    if not isinstance(raw_tables, list) or not isinstance(raw_enums, list):
        raise SchemaError(f"{source}: tables and enumerations must be lists")

    registry.add_application(application)
    for i, raw in enumerate(raw_enums):
        registry.add_enumeration(
            parse_enumeration(raw, application, f"{source} enumeration {i}")
        )
    for i, raw in enumerate(raw_tables):
        registry.add_table(parse_table(raw, application, f"{source} table {i}"))
    registry.sources.append(source)


def load_schema(paths: Iterable[Path]) -> SchemaRegistry:
    registry = SchemaRegistry()
    for path in paths:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as err:
            raise SchemaError(f"{path.name}: not valid UTF-8: {err}") from err
        try:
            data = json.loads(text)
        except json.JSONDecodeError as err:
            raise SchemaError(f"{path.name}: invalid JSON: {err}") from err
        register_schema_document(registry, data, path.name)
    return registry


# ===--- Naming policy ---=== #


def capitalize(name: str) -> str:
    """Upper-case the first character only."""
    return name[:1].upper() + name[1:]


def accessor_name(field_name: str) -> str:
    name = capitalize(field_name)
    if not _IDENTIFIER_RE.match(name):
        raise RenderError(f"Field name {field_name!r} is not a valid accessor name")
    return name


def reader_name(table_name: str) -> str:
    return f"{table_name}Reader"


def vector_reader_name(table_name: str) -> str:
    return f"Vector{table_name}Reader"


def to_snake_case(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", "_", name).lower()


def format_doc_comment(name: str, doc: Documentation | None) -> list[str]:
    """Return `//` comment lines documenting the symbol `name`.

    Rules:
        short and long  -> "// <name> <short>" followed by the long text
        only one        -> "// <name> <text>"
        neither         -> "// <name> ..."

    Multi-line text yields one comment line per source line, so the result
    is always a valid comment block.
    """
    short = doc.short.strip() if doc else ""
    long = doc.long.strip() if doc else ""
    if short and long:
        text = f"{name} {short}\n{long}"
    elif short or long:
        text = f"{name} {short or long}"
    else:
        text = f"{name} ..."
    return [f"// {line}".rstrip() for line in text.splitlines()]


# ===--- Generator options ---=== #

UNRESOLVED_POLICIES = ("skip", "fail")


@dataclass(frozen=True)
class GeneratorOptions:
    """Per-pass generation settings.

    Attributes:
        vector_package: Import path of the shared vector-primitives package.
            Its last segment is used as the package qualifier.
        on_unresolved: "skip" omits fields with no accessor shape; "fail"
            raises UnresolvedFieldError.
        indent: Indentation of interface members.
    """

    vector_package: str = DEFAULT_VECTOR_PACKAGE
    on_unresolved: str = "skip"
    indent: str = DEFAULT_INDENT

    def __post_init__(self) -> None:
        if self.on_unresolved not in UNRESOLVED_POLICIES:
            raise ValueError(f"Unknown unresolved-field policy: {self.on_unresolved}")
        if not _IDENTIFIER_RE.match(self.vector_qualifier):
            raise ValueError(f"Invalid vector package: {self.vector_package!r}")

    @property
    def vector_qualifier(self) -> str:
        return self.vector_package.rsplit("/", 1)[-1]


# ===--- Import set ---=== #


class ImportSet:
    """Deduplicated import paths, flushed in sorted order."""

    def __init__(self) -> None:
        self._paths: dict[str, bool] = {}

    def add(self, path: str) -> None:
        self._paths[path] = True

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._paths))

    def render(self, indent: str = DEFAULT_INDENT) -> str:
        if not self._paths:
            return ""
        lines = ["import (", *(f'{indent}"{path}"' for path in self), ")"]
        return "\n".join(lines) + "\n"

    def write(self, sink: TextIO, indent: str = DEFAULT_INDENT) -> None:
        sink.write(self.render(indent))


# ===--- Accessor emission ---=== #


class AccessorShape(Enum):
    STRING = "string"
    VECTOR_STRING = "vector-string"
    VECTOR_TABLE = "vector-table"
    TABLE = "table"
    ENUMERATION = "enumeration"


@dataclass(frozen=True)
class AccessorSignature:
    shape: AccessorShape
    name: str
    result: str
    import_path: str | None = None

    def render(self) -> str:
        return f"{self.name}() {self.result}"


def field_type_token(field_def: FieldDefinition) -> str | None:
    """Return the token that must go through the resolver, if any.

    Raises:
        RenderError: If a vector field has no items token.
    """
    if field_def.type == SCALAR_STRING:
        return None
    if field_def.type == VECTOR:
        if not field_def.items:
            raise RenderError(f"Vector field {field_def.name!r} has no items type")
        if field_def.items == SCALAR_STRING:
            return None
        return field_def.items
    return field_def.type


def accessor_signature(
    field_def: FieldDefinition,
    ref: ResolvedTypeReference | None,
    options: GeneratorOptions | None = None,
) -> AccessorSignature | None:
    """Select the accessor shape for a field and build its signature.

    Dispatch, first match wins:
        String                      -> Name() string
        Vector of String            -> Name() <qualifier>.VectorStringReader
        Vector of a table           -> Name() Vector<Target>Reader
        token resolving to a table  -> Name() (<Target>Reader, error)
        token resolving to a group  -> Name() <ParentEnumeration>

    Anything else has no accessor and returns None.

    Args:
        field_def: The field to emit.
        ref: Resolution of field_type_token(field_def). Must be given
            whenever that token is not None.
        options: Supplies the vector package. Defaults to GeneratorOptions().

    Raises:
        RenderError: Invalid accessor name, vector without items, or an
            enumeration group without a parent.
        ValueError: A resolvable token was passed without a reference.
    """
    options = options or GeneratorOptions()
    name = accessor_name(field_def.name)
    token = field_type_token(field_def)

    if token is None:
        if field_def.type == SCALAR_STRING:
            return AccessorSignature(AccessorShape.STRING, name, "string")
        return AccessorSignature(
            AccessorShape.VECTOR_STRING,
            name,
            f"{options.vector_qualifier}.VectorStringReader",
            import_path=options.vector_package,
        )

    if ref is None:
        raise ValueError(f"No resolved reference given for type token {token!r}")

    if field_def.type == VECTOR:
        if ref.kind is SymbolKind.TABLE:
            return AccessorSignature(
                AccessorShape.VECTOR_TABLE, name, vector_reader_name(ref.target_id)
            )
        return None

    if ref.kind is SymbolKind.TABLE:
        return AccessorSignature(
            AccessorShape.TABLE, name, f"({reader_name(ref.target_id)}, error)"
        )
    if ref.kind is SymbolKind.ENUMERATION_GROUP:
        if not ref.parent_id:
            raise RenderError(f"Enumeration group {ref.target_id!r} has no parent")
        return AccessorSignature(AccessorShape.ENUMERATION, name, ref.parent_id)
    return None


def format_vector_reader(table_name: str, indent: str = DEFAULT_INDENT) -> str:
    """Return the Vector<Table>Reader interface for a table.

    Identical in shape for every table. Get must return the element for
    0 <= i < Len() (the type's default when the slot is unset) and a
    VectorInvalidIndexError for any other i.
    """
    name = vector_reader_name(table_name)
    lines = [
        "",
        f"// {name} ...",
        f"type {name} interface {{",
        "",
        f"{indent}// Len returns the current size of this vector",
        f"{indent}Len() int",
        "",
        f"{indent}// Get returns the item in the position i, if 0 <= i < Len().",
        f"{indent}// If the item does not exist it returns the default value for the underlying data type.",
        f"{indent}// When i < 0 or i >= Len() it returns a VectorInvalidIndexError.",
        f"{indent}Get(i int) ({reader_name(table_name)}, error)",
        "}",
    ]
    return "\n".join(lines) + "\n"


class TableReaderGenerator:
    """Emits the reader interface for one table.

    Single use: create one per table, call generate() once, discard. Output
    accumulates in three buffers (imports, definitions, auxiliary
    interfaces) that are only written to the sink after every field has been
    emitted, in that order.
    """

    def __init__(
        self,
        table: TableDefinition,
        resolver: SymbolResolver,
        options: GeneratorOptions | None = None,
    ):
        self.table = table
        self.resolver = resolver
        self.options = options or GeneratorOptions()
        self.imports = ImportSet()
        self.definitions = io.StringIO()
        self.functions = io.StringIO()
        self.accessors: list[AccessorSignature] = []
        self.skipped: list[str] = []
        self._generated = False
        self.log = structlog.wrap_logger(logger).bind(
            TableName=table.name,
            Type="Reader Interface",
            Application=table.application,
        )

    def _write_lines(self, buffer: io.StringIO, lines: Sequence[str], indent: str = "") -> None:
        for line in lines:
            buffer.write(f"{indent}{line}\n" if line else "\n")

    def start_interface(self) -> None:
        name = reader_name(self.table.name)
        if not _IDENTIFIER_RE.match(name):
            raise RenderError(f"Table name {self.table.name!r} is not a valid identifier")
        self.definitions.write("\n")
        self._write_lines(
            self.definitions,
            [*format_doc_comment(name, self.table.documentation), f"type {name} interface {{"],
        )

    def select_accessor(self, field_def: FieldDefinition) -> AccessorSignature | None:
        token = field_type_token(field_def)
        ref = None
        if token is not None:
            ref = self.resolver.resolve(self.table.application, token)
        signature = accessor_signature(field_def, ref, self.options)
        if signature is None:
            assert ref is not None and token is not None
            if self.options.on_unresolved == "fail":
                raise UnresolvedFieldError(self.table.name, field_def.name, token, ref.kind)
            self.log.debug(
                "field_skipped", field=field_def.name, token=token, kind=ref.kind.value
            )
        return signature

    def emit_accessor(self, field_def: FieldDefinition, signature: AccessorSignature) -> None:
        if signature.import_path:
            self.imports.add(signature.import_path)
        self.definitions.write("\n")
        self._write_lines(
            self.definitions,
            [*format_doc_comment(signature.name, field_def.documentation), signature.render()],
            self.options.indent,
        )
        self.accessors.append(signature)

    def create_accessors(self) -> None:
        for field_def in self.table.fields:
            signature = self.select_accessor(field_def)
            if signature is None:
                self.skipped.append(field_def.name)
                continue
            self.emit_accessor(field_def, signature)

    def create_vector(self) -> None:
        self.functions.write(format_vector_reader(self.table.name, self.options.indent))

    def end_interface(self) -> None:
        self.definitions.write("}\n")

    def flush_buffers(self, sink: TextIO) -> None:
        self.imports.write(sink, self.options.indent)
        sink.write(self.definitions.getvalue())
        sink.write(self.functions.getvalue())

    def generate(self, sink: TextIO) -> None:
        """Run the full pass and write the artifact to sink.

        Raises:
            RuntimeError: If this generator has already been used.
            GenerationError: Propagated unchanged from resolution or
                rendering. Nothing is written to sink in that case.
            OSError: Propagated unchanged from sink writes.
        """
        if self._generated:
            raise RuntimeError("TableReaderGenerator instances are single-use")
        self._generated = True

        self.start_interface()
        self.create_accessors()
        self.create_vector()
        self.end_interface()
        self.flush_buffers(sink)

        self.log.info(
            "interface_created",
            accessors=len(self.accessors),
            skipped=len(self.skipped),
        )


@dataclass(frozen=True)
class GeneratedInterface:
    table: TableDefinition
    text: str
    accessors: tuple[AccessorSignature, ...]
    skipped: tuple[str, ...]


def generate_table(
    table: TableDefinition,
    resolver: SymbolResolver,
    options: GeneratorOptions | None = None,
) -> GeneratedInterface:
    sink = io.StringIO()
    generator = TableReaderGenerator(table, resolver, options)
    generator.generate(sink)
    return GeneratedInterface(
        table=table,
        text=sink.getvalue(),
        accessors=tuple(generator.accessors),
        skipped=tuple(generator.skipped),
    )


def render_table_interface(
    table: TableDefinition,
    resolver: SymbolResolver,
    options: GeneratorOptions | None = None,
) -> str:
    return generate_table(table, resolver, options).text


# ===--- Vector runtime contract ---=== #

T = TypeVar("T")


class VectorReader(Generic[T]):
    """In-memory implementation of the Vector<Table>Reader contract.

    Unset slots (None) read as default(). Any index outside [0, len())
    raises VectorInvalidIndexError.
    """

    def __init__(self, items: Sequence[T | None], default: Callable[[], T]):
        self._items = list(items)
        self._default = default

    def len(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, i: int) -> T:
        if i < 0 or i >= len(self._items):
            raise VectorInvalidIndexError(i, len(self._items))
        item = self._items[i]
        if item is None:
            return self._default()
        return item


# ===--- Package writer ---=== #


@dataclass(frozen=True)
class WriteConfig:
    """Shared metadata embedded in every generated file.

    Attributes:
        package: Go package clause for every file.
        sources: Schema file names shown in the header.
    """

    package: str
    sources: tuple[str, ...]


@dataclass(frozen=True)
class FileWriteResult:
    filename: str
    path: Path
    table: str
    accessor_count: int
    skipped: tuple[str, ...]
    line_count: int
    byte_count: int


@dataclass(frozen=True)
class PackageWriteResult:
    output_dir: Path
    files: tuple[FileWriteResult, ...]

    @property
    def total_lines(self) -> int:
        """Sum of line_count across all written files."""
        return sum(f.line_count for f in self.files)


def table_filename(table_name: str) -> str:
    return f"{to_snake_case(table_name)}_reader.go"


def format_file_header(config: WriteConfig, application: str) -> list[str]:
    """Return the comment lines at the top of every generated file.

    Output format:
        // Code generated by table-reader-gen. DO NOT EDIT.
        // Source: store.json
        // Application: store

    Raises:
        ValueError: If config.sources is empty.
    """
    if not config.sources:
        raise ValueError("sources must not be empty")
    return [
        f"// Code generated by {TOOL_NAME}. DO NOT EDIT.",
        f"// Source: {', '.join(config.sources)}",
        f"// Application: {application}",
    ]


def assemble_table_source(config: WriteConfig, generated: GeneratedInterface) -> str:
    """Assemble a complete .go file: header, package clause, interface text."""
    parts = format_file_header(config, generated.table.application)
    parts.extend(["", f"package {config.package}", ""])
    return "\n".join(parts) + "\n" + generated.text.lstrip("\n")


def write_table(
    output_dir: Path, config: WriteConfig, generated: GeneratedInterface
) -> FileWriteResult:
    """Write one generated table file. Creates output_dir if absent.

    Raises:
        OSError: Propagated directly if the filesystem write fails.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    content = assemble_table_source(config, generated)
    filename = table_filename(generated.table.name)
    file_path = output_dir / filename
    file_path.write_text(content, encoding="utf-8")
    return FileWriteResult(
        filename=filename,
        path=file_path.resolve(),
        table=generated.table.name,
        accessor_count=len(generated.accessors),
        skipped=generated.skipped,
        line_count=content.count("\n"),
        byte_count=len(content.encode("utf-8")),
    )


def write_package(
    output_dir: Path,
    config: WriteConfig,
    generated: Sequence[GeneratedInterface],
) -> PackageWriteResult:
    files = tuple(write_table(output_dir, config, g) for g in generated)
    return PackageWriteResult(output_dir=Path(output_dir), files=files)


# ===--- Pipeline ---=== #


def select_tables(
    registry: SchemaRegistry, names: Sequence[str]
) -> list[TableDefinition]:
    """Return the requested tables, or every table when names is empty.

    Raises:
        ConfigError: UNKNOWN_TABLE for a name not in the registry, NO_TABLES
            when the schema defines none.
    """
    if not names:
        tables = registry.tables()
        if not tables:
            raise ConfigError(
                "NO_TABLES",
                "The schema defines no tables.",
                "Add at least one entry under \"tables\".",
            )
        return tables

    selected: list[TableDefinition] = []
    for name in names:
        table = registry.table(name)
        if table is None:
            raise ConfigError(
                "UNKNOWN_TABLE",
                f"Unknown table: {name}",
                "Run with --list-tables to see available tables.",
            )
        selected.append(table)
    return selected


def check_output_filenames(tables: Sequence[TableDefinition]) -> None:
    """Reject selections where two tables map to the same output file.

    Raises:
        ConfigError: DUPLICATE_TABLE for a table selected twice, or for
            same-named tables from different applications.
    """
    seen: dict[str, TableDefinition] = {}
    for table in tables:
        filename = table_filename(table.name)
        first = seen.get(filename)
        if first is None:
            seen[filename] = table
            continue
        if (first.application, first.name) == (table.application, table.name):
            message = f"Table {table.application}.{table.name} is selected more than once"
        else:
            message = (
                f"Tables {first.application}.{first.name} and "
                f"{table.application}.{table.name} would both be written to {filename}"
            )
        raise ConfigError(
            "DUPLICATE_TABLE",
            message,
            "Select each table once, and generate applications sharing a "
            "table name into separate output directories.",
        )


def resolve_package_name(package: str | None, tables: Sequence[TableDefinition]) -> str:
    if package is not None:
        return package
    applications = sorted({t.application for t in tables})
    if len(applications) != 1:
        raise ConfigError(
            "AMBIGUOUS_PACKAGE",
            f"Tables span several applications: {', '.join(applications)}",
            "Pass --package to choose the Go package name.",
        )
    return validate_package_name(applications[0].lower())


def run_generate(config: GenerateConfig) -> PackageWriteResult:
    """Execute the complete generation pipeline for a GenerateConfig.

    Every table is rendered before any file is written, so a failing table
    leaves the output directory untouched.

    Raises:
        ConfigError: Unknown or duplicate table, or undeterminable package name.
        SchemaError: Malformed schema file.
        GenerationError: Resolution, rendering or strict-mode failure.
        OSError: Schema not readable or filesystem write failure.
    """
    print(f"Loading: {', '.join(str(p) for p in config.schema_paths)}")
    registry = load_schema(config.schema_paths)
    print(
        f"  Schema: {len(registry.tables())} tables, "
        f"{len(registry.enumerations())} enumerations"
    )

    tables = select_tables(registry, config.tables)
    check_output_filenames(tables)
    package = resolve_package_name(config.package, tables)
    options = GeneratorOptions(
        vector_package=config.vector_package,
        on_unresolved="fail" if config.strict else "skip",
    )
    write_config = WriteConfig(package=package, sources=tuple(registry.sources))

    generated = [generate_table(table, registry, options) for table in tables]
    print(f"  Generated: {len(generated)} interfaces")

    result = write_package(config.output_dir, write_config, generated)
    print_generation_summary(write_config, result)
    return result


# ===--- Summary report ---=== #


def format_generation_summary(config: WriteConfig, result: PackageWriteResult) -> str:
    """Render the post-generation console report.

    Returns a string with exactly one trailing newline.
    """
    lines = [
        "Reader interfaces generated:",
        "",
        f"  Package:    {config.package}",
        f"  Source:     {', '.join(config.sources)}",
        f"  Output:     {result.output_dir}",
        "",
        "  Files written:",
    ]
    for f in result.files:
        row = f"    {f.filename:<28} {f.accessor_count:>3} accessors {f.line_count:>6,} lines"
        if f.skipped:
            row += f"  (skipped: {', '.join(f.skipped)})"
        lines.append(row)
    lines.append("")
    lines.append(f"  Total: {result.total_lines:,} lines across {len(result.files)} files")
    lines.append("")
    return "\n".join(lines)


def print_generation_summary(config: WriteConfig, result: PackageWriteResult) -> None:
    print(format_generation_summary(config, result), end="")


# ===--- Discovery ---=== #


@dataclass(frozen=True)
class TableSummary:
    application: str
    name: str
    field_count: int
    accessor_count: int
    skipped: tuple[str, ...]


def gather_table_summaries(
    registry: SchemaRegistry, tables: Sequence[TableDefinition]
) -> list[TableSummary]:
    summaries = []
    for table in tables:
        generated = generate_table(table, registry)
        summaries.append(
            TableSummary(
                application=table.application,
                name=table.name,
                field_count=len(table.fields),
                accessor_count=len(generated.accessors),
                skipped=generated.skipped,
            )
        )
    return summaries


def format_tables_listing(summaries: Sequence[TableSummary]) -> str:
    """Return the --list-tables output.

    Output format:

        Tables in schema:

          store.Item           2 fields    2 accessors
          store.Order          3 fields    2 accessors    (skipped: notes)
    """
    lines = ["Tables in schema:", ""]
    for row in summaries:
        label = f"{row.application}.{row.name}"
        line = f"  {label:<24} {row.field_count:>3} fields {row.accessor_count:>4} accessors"
        if row.skipped:
            line += f"    (skipped: {', '.join(row.skipped)})"
        lines.append(line)
    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    registry = load_schema(config.schema_paths)
    tables = select_tables(registry, config.tables)
    print(format_tables_listing(gather_table_summaries(registry, tables)), end="")


# ===--- Main ---=== #


def _report_config_error(err: ConfigError) -> None:
    print(f"Config error [{err.code}]: {err.message}")
    if err.suggestion:
        print(f"Hint: {err.suggestion}")


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
    except ConfigError as err:
        _report_config_error(err)
        raise SystemExit(1) from err

    configure_logging(config.log_level)

    try:
        if isinstance(config, DiscoveryConfig):
            run_discovery(config)
        else:
            run_generate(config)
    except ConfigError as err:
        _report_config_error(err)
        raise SystemExit(1) from err
    except (OSError, SchemaError) as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except GenerationError as err:
        print(f"Generation error: {err}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
