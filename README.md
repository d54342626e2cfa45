# pgschemamodel

pgschemamodel is a plain-Python model of a PostgreSQL schema. It covers:

- extensions
- tables, with their columns and check constraints
- indexes, including primary-key constraints
- foreign keys
- sequences
- functions
- triggers

It can sort a schema into a stable order and hash it. It can also rewrite the DDL that the PostgreSQL catalog functions produce.

The package has no runtime dependencies.

## Installation

```
pip install .
```

## Usage

```python
from pgschemamodel.schema import (
    Column,
    GetIndexDefStatement,
    GetTriggerDefStatement,
    Schema,
    SchemaQualifiedName,
    Table,
    escape_identifier,
    fq_escaped_column_name,
)

schema = Schema(
    tables=[
        Table(name="foo", columns=[Column(name="id", type="integer", size=4)]),
    ],
)

normalized = schema.normalize()   # object lists sorted by identifier
digest = schema.hash()            # hex digest of the normalized schema

stmt = GetIndexDefStatement("CREATE UNIQUE INDEX foo_idx ON public.foo USING btree (id)")
stmt.to_create_index_concurrently()
# 'CREATE UNIQUE INDEX CONCURRENTLY foo_idx ON public.foo USING btree (id)'

GetTriggerDefStatement("CREATE TRIGGER t BEFORE UPDATE ON public.foo ...").to_create_or_replace()
# 'CREATE OR REPLACE TRIGGER t BEFORE UPDATE ON public.foo ...'

escape_identifier("foo")  # '"foo"'
table = SchemaQualifiedName(schema_name="public", escaped_name='"foo"')
table.fq_escaped_name()                 # '"public"."foo"'
fq_escaped_column_name(table, "id")     # '"public"."foo"."id"'
```

### Schema objects

The model has these classes:

- `Schema` and its objects: `Extension`, `Table`, `Column`, `CheckConstraint`, `Index`, `IndexConstraint`, `ForeignKeyConstraint`, `Sequence`, `SequenceOwner`, `Function` and `Trigger`.
- `SchemaQualifiedName`, a name scoped within a schema. Its object name is already escaped.

The schema objects are all dataclasses. Each one, and `SchemaQualifiedName` too, has an `identifier()` method. It returns the name used to match an object in one schema with the same object in another:

- For a table, column, check constraint or index, this is its own name.
- For an extension, sequence or function, it is the fully qualified name.
- For a foreign key or trigger, it is the owning table's qualified name joined to the object's own escaped name.

### Normalizing and hashing

`Schema.normalize()` returns a copy in which every object list is sorted by identifier. This also sorts the check constraints of each table and the `depends_on_functions` lists. Column order is kept as given.

`Schema.hash()` serializes the normalized schema and returns a 64-bit digest as lowercase hex. Two schemas that normalize to the same value get the same hash.

### Helpers

- `sort_schema_objects_by_name()` returns a new list sorted by identifier.
- `build_func_name()` builds a function's `SchemaQualifiedName` that includes its identity arguments, for example `"add"(a integer, b integer)`.
- `build_name_from_unescaped()` escapes a plain name and qualifies it with a schema.

### Errors

These raise `ValueError`:

- `GetIndexDefStatement.to_create_index_concurrently()`, when the statement does not start exactly with `CREATE INDEX ` or `CREATE UNIQUE INDEX `.
- `GetTriggerDefStatement.to_create_or_replace()`, when the statement does not start with `CREATE `.
- `index_constraint_type_from_code()`, for any code other than `"p"`. The code `"p"` maps to `IndexConstraintType.PRIMARY_KEY`.

## What the package does not do

The package does not connect to a database or read a schema from the PostgreSQL catalogs. You build the objects yourself. It does not compare two schemas or generate migration statements. It provides the model and the naming rules that such tools need.

## Running the tests

```
pip install .[test]
pytest
```