"""Model of a PostgreSQL schema: tables, indexes, constraints, sequences, functions, triggers."""

from __future__ import annotations

import dataclasses
import enum
import hashlib
import json
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, TypeVar


class SchemaObject(Protocol):
    """Anything that can be matched between an old and a new schema by its identifier."""

    def identifier(self) -> str: ...


_T = TypeVar("_T", bound=SchemaObject)


def escape_identifier(name: str) -> str:
    """Wrap an identifier in double quotes."""
    return f'"{name}"'


@dataclass(frozen=True)
class SchemaQualifiedName:
    """An object name scoped within a schema. The object name is already escaped."""

    schema_name: str = ""
    escaped_name: str = ""

    def identifier(self) -> str:
        return self.fq_escaped_name()

    def fq_escaped_name(self) -> str:
        """The fully-qualified, escaped name, including the schema name."""
        return f"{escape_identifier(self.schema_name)}.{self.escaped_name}"

    def is_empty(self) -> bool:
        return not self.schema_name


def sort_schema_objects_by_name(objects: Iterable[_T]) -> list[_T]:
    """Return a new list of the objects sorted by their identifiers."""
    return sorted(objects, key=lambda obj: obj.identifier())


@dataclass(kw_only=True)
class Extension:
    qualified_name: SchemaQualifiedName
    version: str = ""

    def identifier(self) -> str:
        return self.qualified_name.identifier()


@dataclass(kw_only=True)
class Column:
    name: str
    type: str = ""
    collation: SchemaQualifiedName = field(default_factory=SchemaQualifiedName)
    # SQL expression of the default value; empty when there is none.
    default: str = ""
    is_nullable: bool = False
    # Bytes needed to store a value; -1 for variable length.
    size: int = 0

    def identifier(self) -> str:
        return self.name

    def is_collated(self) -> bool:
        return not self.collation.is_empty()


@dataclass(kw_only=True)
class CheckConstraint:
    name: str
    expression: str = ""
    is_valid: bool = False
    is_inheritable: bool = False
    depends_on_functions: list[SchemaQualifiedName] = field(default_factory=list)

    def identifier(self) -> str:
        return self.name


@dataclass(kw_only=True)
class Table:
    name: str
    columns: list[Column] = field(default_factory=list)
    check_constraints: list[CheckConstraint] = field(default_factory=list)
    # Output of pg_get_partkeydef; empty when the table is not partitioned.
    partition_key_def: str = ""
    parent_table_name: str = ""
    for_values: str = ""

    def identifier(self) -> str:
        return self.name

    def is_partitioned(self) -> bool:
        return bool(self.partition_key_def)

    def is_partition(self) -> bool:
        return bool(self.for_values)


_INDEX_TO_CONCURRENTLY = re.compile(r"(CREATE (UNIQUE )?INDEX )(.*)")


class GetIndexDefStatement(str):
    """A CREATE INDEX statement as returned by pg_get_indexdef (never CONCURRENTLY)."""

    def to_create_index_concurrently(self) -> str:
        match = _INDEX_TO_CONCURRENTLY.fullmatch(self)
        if match is None:
            raise ValueError(f"{self} follows an unexpected structure")
        return f"{match.group(1)}CONCURRENTLY {match.group(3)}"


class IndexConstraintType(str, enum.Enum):
    PRIMARY_KEY = "PRIMARY KEY"


_INDEX_CONSTRAINT_CODES = {"p": IndexConstraintType.PRIMARY_KEY}


def index_constraint_type_from_code(constraint_type: str) -> IndexConstraintType:
    """Map a pg_constraint.contype code to an index constraint type."""
    try:
        return _INDEX_CONSTRAINT_CODES[constraint_type]
    except KeyError:
        raise ValueError(
            f"unknown/unsupported index constraint type: {constraint_type}"
        ) from None


@dataclass(kw_only=True)
class IndexConstraint:
    """A constraint that is always 1:1 with an index, e.g. a primary key."""

    type: IndexConstraintType
    escaped_constraint_name: str = ""
    constraint_def: str = ""
    is_local: bool = False


@dataclass(kw_only=True)
class Index:
    table_name: str
    name: str
    columns: list[str] = field(default_factory=list)
    is_invalid: bool = False
    is_unique: bool = False
    constraint: Optional[IndexConstraint] = None
    get_index_def_stmt: GetIndexDefStatement = GetIndexDefStatement("")
    # Name of the parent index when this index is a partition of an index.
    parent_idx_name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.get_index_def_stmt, GetIndexDefStatement):
            self.get_index_def_stmt = GetIndexDefStatement(self.get_index_def_stmt)

    def identifier(self) -> str:
        return self.name

    def is_partition_of_index(self) -> bool:
        return bool(self.parent_idx_name)

    def is_pk(self) -> bool:
        return (
            self.constraint is not None
            and self.constraint.type == IndexConstraintType.PRIMARY_KEY
        )


@dataclass(kw_only=True)
class ForeignKeyConstraint:
    escaped_name: str
    owning_table: SchemaQualifiedName
    owning_table_unescaped_name: str = ""
    foreign_table: SchemaQualifiedName = field(default_factory=SchemaQualifiedName)
    foreign_table_unescaped_name: str = ""
    constraint_def: str = ""
    is_valid: bool = False

    def identifier(self) -> str:
        return f"{self.owning_table.fq_escaped_name()}_{self.escaped_name}"


@dataclass(kw_only=True)
class SequenceOwner:
    table_name: SchemaQualifiedName
    table_unescaped_name: str = ""
    column_name: str = ""


@dataclass(kw_only=True)
class Sequence:
    qualified_name: SchemaQualifiedName
    owner: Optional[SequenceOwner] = None
    type: str = ""
    start_value: int = 0
    increment: int = 0
    max_value: int = 0
    min_value: int = 0
    cache_size: int = 0
    cycle: bool = False

    def identifier(self) -> str:
        return self.qualified_name.identifier()


@dataclass(kw_only=True)
class Function:
    qualified_name: SchemaQualifiedName
    # CREATE OR REPLACE statement as returned by pg_get_functiondef.
    function_def: str = ""
    language: str = ""
    depends_on_functions: list[SchemaQualifiedName] = field(default_factory=list)

    def identifier(self) -> str:
        return self.qualified_name.identifier()


_TRIGGER_TO_OR_REPLACE = re.compile(r"(CREATE )(.*)")


class GetTriggerDefStatement(str):
    """A CREATE TRIGGER statement as returned by pg_get_triggerdef (never OR REPLACE)."""

    def to_create_or_replace(self) -> str:
        match = _TRIGGER_TO_OR_REPLACE.fullmatch(self)
        if match is None:
            raise ValueError(f"{self} follows an unexpected structure")
        return f"{match.group(1)}OR REPLACE {match.group(2)}"


@dataclass(kw_only=True)
class Trigger:
    escaped_name: str
    owning_table: SchemaQualifiedName
    owning_table_unescaped_name: str = ""
    function: SchemaQualifiedName = field(default_factory=SchemaQualifiedName)
    get_trigger_def_stmt: GetTriggerDefStatement = GetTriggerDefStatement("")

    def __post_init__(self) -> None:
        if not isinstance(self.get_trigger_def_stmt, GetTriggerDefStatement):
            self.get_trigger_def_stmt = GetTriggerDefStatement(self.get_trigger_def_stmt)

    def identifier(self) -> str:
        return f"{self.owning_table.fq_escaped_name()}_{self.escaped_name}"


@dataclass(kw_only=True)
class Schema:
    extensions: list[Extension] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    foreign_key_constraints: list[ForeignKeyConstraint] = field(default_factory=list)
    sequences: list[Sequence] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    triggers: list[Trigger] = field(default_factory=list)

    def normalize(self) -> Schema:
        """Return a copy with every object list sorted by identifier.

        Column order is kept: it comes from the catalogs and matters for data packing.
        """
        tables = [
            dataclasses.replace(
                table,
                columns=list(table.columns),
                check_constraints=[
                    dataclasses.replace(
                        check,
                        depends_on_functions=sort_schema_objects_by_name(
                            check.depends_on_functions
                        ),
                    )
                    for check in sort_schema_objects_by_name(table.check_constraints)
                ],
            )
            for table in sort_schema_objects_by_name(self.tables)
        ]
        functions = [
            dataclasses.replace(
                function,
                depends_on_functions=sort_schema_objects_by_name(
                    function.depends_on_functions
                ),
            )
            for function in sort_schema_objects_by_name(self.functions)
        ]
        return Schema(
            extensions=sort_schema_objects_by_name(self.extensions),
            tables=tables,
            indexes=sort_schema_objects_by_name(self.indexes),
            foreign_key_constraints=sort_schema_objects_by_name(
                self.foreign_key_constraints
            ),
            sequences=sort_schema_objects_by_name(self.sequences),
            functions=functions,
            triggers=sort_schema_objects_by_name(self.triggers),
        )

    def hash(self) -> str:
        """A 64-bit hex digest of the normalized schema."""
        canonical = json.dumps(
            dataclasses.asdict(self.normalize()), sort_keys=True, separators=(",", ":")
        )
        digest = hashlib.blake2b(canonical.encode("utf-8"), digest_size=8).digest()
        return format(int.from_bytes(digest, "big"), "x")


def fq_escaped_column_name(table: SchemaQualifiedName, column_name: str) -> str:
    """Fully-qualified, escaped column name."""
    return f"{table.fq_escaped_name()}.{escape_identifier(column_name)}"


def build_func_name(
    name: str, identity_arguments: str, schema_name: str
) -> SchemaQualifiedName:
    """Name of a function, including its identity arguments."""
    return SchemaQualifiedName(
        schema_name=schema_name, escaped_name=f'"{name}"({identity_arguments})'
    )


def build_name_from_unescaped(unescaped_name: str, schema_name: str) -> SchemaQualifiedName:
    return SchemaQualifiedName(
        schema_name=schema_name, escaped_name=escape_identifier(unescaped_name)
    )