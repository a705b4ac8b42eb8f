"""
Schema definition and migration parsing.

Reads Prisma `model` blocks and SQL DDL into TableSpec snapshots, and SQL
migration files into an ordered list of operations.
"""

import re
from dataclasses import dataclass
from typing import Optional

from diff_qa_reporter.errors import UnparseableFileError
from diff_qa_reporter.models.schema import ColumnSpec, RelationSpec, TableSpec
from diff_qa_reporter.parser.source_scanner import (
    ScanError,
    find_closing,
    split_top_level,
    strip_comments,
)

_PRISMA_BLOCK_RE = re.compile(r"^\s*(model|enum|view|type)\s+(\w+)\s*\{", re.M)
_PRISMA_MAP_RE = re.compile(r"@map\(\s*\"([^\"]+)\"\s*\)")
_PRISMA_TABLE_MAP_RE = re.compile(r"@@map\(\s*\"([^\"]+)\"\s*\)")
_PRISMA_RELATION_RE = re.compile(
    r"@relation\([^)]*fields:\s*\[([^\]]+)\][^)]*references:\s*\[([^\]]+)\]"
)
_PRISMA_DEFAULT_RE = re.compile(r"@default\(")

_SQL_LINE_COMMENT_RE = re.compile(r"--[^\n]*")
_SQL_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.S)
_IDENT = r"(?:\"[^\"]+\"|`[^`]+`|\[[^\]]+\]|[\w.]+)"
_CREATE_TABLE_RE = re.compile(
    rf"^CREATE\s+(?:UNLOGGED\s+|TEMP(?:ORARY)?\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?({_IDENT})\s*\(",
    re.I,
)
_DROP_TABLE_RE = re.compile(rf"^DROP\s+TABLE\s+(?:IF\s+EXISTS\s+)?({_IDENT})", re.I)
_ALTER_TABLE_RE = re.compile(
    rf"^ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?({_IDENT})\s+(.*)$", re.I | re.S
)
_RENAME_TABLE_RE = re.compile(rf"^RENAME\s+TO\s+({_IDENT})", re.I)
_DML_RE = re.compile(rf"^(UPDATE|DELETE\s+FROM|INSERT\s+INTO)\s+({_IDENT})", re.I)
_REFERENCES_RE = re.compile(rf"REFERENCES\s+({_IDENT})\s*(?:\(\s*({_IDENT})\s*\))?", re.I)
_FOREIGN_KEY_RE = re.compile(
    rf"FOREIGN\s+KEY\s*\(\s*({_IDENT})\s*\)\s*REFERENCES\s+({_IDENT})\s*(?:\(\s*({_IDENT})\s*\))?",
    re.I,
)
_DEFAULT_RE = re.compile(r"\bDEFAULT\s+('(?:[^']|'')*'|\w+\s*\([^)]*\)|[^\s,]+)", re.I)
_TYPE_STOP_WORDS = {
    "NOT", "NULL", "DEFAULT", "PRIMARY", "REFERENCES", "UNIQUE", "CHECK",
    "CONSTRAINT", "GENERATED", "COLLATE", "AUTO_INCREMENT", "AUTOINCREMENT",
}
_TABLE_CONSTRAINT_WORDS = ("CONSTRAINT", "PRIMARY", "FOREIGN", "UNIQUE", "CHECK", "INDEX", "KEY")


def unquote_identifier(identifier: str) -> str:
    """Strip quoting and schema qualification: `"public"."Package"` -> `Package`."""
    name = identifier.strip()
    parts = re.findall(r"\"([^\"]+)\"|`([^`]+)`|\[([^\]]+)\]|([^.\s]+)", name)
    if not parts:
        return name
    last = parts[-1]
    return next(p for p in last if p)


@dataclass
class SqlOperation:
    """One structural (or data) operation from a migration script."""

    kind: str
    table: str
    column: Optional[ColumnSpec] = None
    column_name: Optional[str] = None
    new_type: Optional[str] = None
    nullable: Optional[bool] = None
    relation: Optional[RelationSpec] = None
    new_name: Optional[str] = None
    table_spec: Optional[TableSpec] = None


# ----------------------------------------------------------------------
# Prisma
# ----------------------------------------------------------------------


def parse_prisma_schema(source: str, path: str = "schema.prisma") -> list[TableSpec]:
    """
    Parse the `model` blocks of a Prisma schema into tables.

    Table and column names honour `@@map` and `@map`. Relation fields
    become RelationSpecs, list back-references are skipped.

    Raises:
        UnparseableFileError: If a block is not closed.
    """
    code = strip_comments(source)
    blocks: list[tuple[str, str, str]] = []
    try:
        for match in _PRISMA_BLOCK_RE.finditer(code):
            open_brace = match.end() - 1
            close_brace = find_closing(code, open_brace)
            blocks.append((match.group(1), match.group(2), code[open_brace + 1:close_brace]))
    except ScanError as e:
        raise UnparseableFileError(path, str(e)) from e

    model_tables: dict[str, str] = {}
    for kind, name, body in blocks:
        if kind == "model":
            table_map = _PRISMA_TABLE_MAP_RE.search(body)
            model_tables[name] = table_map.group(1) if table_map else name

    tables: list[TableSpec] = []
    for kind, name, body in blocks:
        if kind != "model":
            continue
        columns: list[ColumnSpec] = []
        relations: list[RelationSpec] = []
        field_columns: dict[str, str] = {}
        pending_relations: list[tuple[list[str], str, list[str]]] = []

        for raw_line in body.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("@@"):
                continue
            tokens = line.split(None, 2)
            if len(tokens) < 2:
                continue
            field_name, field_type = tokens[0], tokens[1]
            attributes = tokens[2] if len(tokens) > 2 else ""
            base_type = field_type.rstrip("?").removesuffix("[]")

            if base_type in model_tables:
                relation = _PRISMA_RELATION_RE.search(attributes)
                if relation and not field_type.endswith("[]"):
                    local = [f.strip() for f in relation.group(1).split(",")]
                    remote = [f.strip() for f in relation.group(2).split(",")]
                    pending_relations.append((local, base_type, remote))
                continue

            column_map = _PRISMA_MAP_RE.search(attributes)
            column_name = column_map.group(1) if column_map else field_name
            field_columns[field_name] = column_name
            columns.append(
                ColumnSpec(
                    name=column_name,
                    type=base_type.removesuffix("[]") + ("[]" if field_type.endswith("[]") else ""),
                    nullable=field_type.endswith("?"),
                    default=_prisma_default(attributes),
                    primary_key="@id" in attributes,
                )
            )

        for local, target_model, remote in pending_relations:
            for local_field, remote_field in zip(local, remote):
                relations.append(
                    RelationSpec(
                        column=field_columns.get(local_field, local_field),
                        references_table=model_tables[target_model],
                        references_column=remote_field,
                    )
                )

        tables.append(TableSpec(name=model_tables[name], columns=columns, relations=relations))
    return tables


def _prisma_default(attributes: str) -> Optional[str]:
    match = _PRISMA_DEFAULT_RE.search(attributes)
    if match is None:
        return None
    open_paren = match.end() - 1
    try:
        close_paren = find_closing(attributes, open_paren)
    except ScanError:
        return None
    return attributes[open_paren + 1:close_paren].strip()


# ----------------------------------------------------------------------
# SQL
# ----------------------------------------------------------------------


def split_sql_statements(source: str) -> list[str]:
    """Strip comments and split a script on top-level semicolons."""
    code = _SQL_BLOCK_COMMENT_RE.sub(" ", source)
    code = _SQL_LINE_COMMENT_RE.sub("", code)
    return split_top_level(code, ";")


def parse_column_definition(definition: str) -> tuple[ColumnSpec, Optional[RelationSpec]]:
    """Parse `name TYPE [NOT NULL] [DEFAULT x] [REFERENCES t(c)]`."""
    tokens = definition.split()
    name = unquote_identifier(tokens[0])
    type_tokens: list[str] = []
    for token in tokens[1:]:
        if token.upper() in _TYPE_STOP_WORDS:
            break
        type_tokens.append(token)
    column_type = " ".join(type_tokens) or "unknown"
    upper = definition.upper()
    primary_key = "PRIMARY KEY" in upper
    nullable = "NOT NULL" not in upper and not primary_key
    default = _DEFAULT_RE.search(definition)

    relation = None
    references = _REFERENCES_RE.search(definition)
    if references:
        relation = RelationSpec(
            column=name,
            references_table=unquote_identifier(references.group(1)),
            references_column=unquote_identifier(references.group(2) or "id"),
        )

    column = ColumnSpec(
        name=name,
        type=column_type,
        nullable=nullable,
        default=default.group(1) if default else None,
        primary_key=primary_key,
    )
    return column, relation


def _parse_create_table(statement: str, path: str) -> Optional[TableSpec]:
    match = _CREATE_TABLE_RE.match(statement)
    if match is None:
        return None
    open_paren = match.end() - 1
    try:
        close_paren = find_closing(statement, open_paren)
    except ScanError as e:
        raise UnparseableFileError(path, str(e)) from e

    table = unquote_identifier(match.group(1))
    columns: list[ColumnSpec] = []
    relations: list[RelationSpec] = []
    primary_keys: set[str] = set()

    for item in split_top_level(statement[open_paren + 1:close_paren]):
        first = item.split(None, 1)[0].upper()
        if first in _TABLE_CONSTRAINT_WORDS:
            foreign_key = _FOREIGN_KEY_RE.search(item)
            if foreign_key:
                relations.append(
                    RelationSpec(
                        column=unquote_identifier(foreign_key.group(1)),
                        references_table=unquote_identifier(foreign_key.group(2)),
                        references_column=unquote_identifier(foreign_key.group(3) or "id"),
                    )
                )
            primary = re.search(r"PRIMARY\s+KEY\s*\(([^)]*)\)", item, re.I)
            if primary:
                primary_keys.update(unquote_identifier(c) for c in primary.group(1).split(","))
            continue
        column, relation = parse_column_definition(item)
        columns.append(column)
        if relation:
            relations.append(relation)

    if primary_keys:
        columns = [
            c.model_copy(update={"primary_key": True, "nullable": False})
            if c.name in primary_keys else c
            for c in columns
        ]
    return TableSpec(name=table, columns=columns, relations=relations)


def parse_sql_schema(source: str, path: str = "schema.sql") -> list[TableSpec]:
    """
    Parse the CREATE TABLE statements of a schema snapshot.

    Raises:
        UnparseableFileError: If a statement is unbalanced.
    """
    try:
        statements = split_sql_statements(source)
    except ScanError as e:
        raise UnparseableFileError(path, str(e)) from e

    tables = []
    for statement in statements:
        table = _parse_create_table(statement, path)
        if table is not None:
            tables.append(table)
    return tables


def parse_sql_migration(source: str, path: str = "migration.sql") -> list[SqlOperation]:
    """
    Parse a migration script into structural operations.

    Statements that do not change structure or data (indexes, grants,
    comments) are ignored.

    Raises:
        UnparseableFileError: If the script is unbalanced.
    """
    try:
        statements = split_sql_statements(source)
    except ScanError as e:
        raise UnparseableFileError(path, str(e)) from e

    operations: list[SqlOperation] = []
    for statement in statements:
        table_spec = _parse_create_table(statement, path)
        if table_spec is not None:
            operations.append(
                SqlOperation(kind="create_table", table=table_spec.name, table_spec=table_spec)
            )
            continue

        drop = _DROP_TABLE_RE.match(statement)
        if drop:
            operations.append(SqlOperation(kind="drop_table", table=unquote_identifier(drop.group(1))))
            continue

        dml = _DML_RE.match(statement)
        if dml:
            verb = dml.group(1).split()[0].upper()
            operations.append(
                SqlOperation(kind="data", table=unquote_identifier(dml.group(2)), new_name=verb)
            )
            continue

        alter = _ALTER_TABLE_RE.match(statement)
        if alter:
            table = unquote_identifier(alter.group(1))
            try:
                actions = split_top_level(alter.group(2))
            except ScanError as e:
                raise UnparseableFileError(path, str(e)) from e
            for action in actions:
                operation = _parse_alter_action(table, action)
                if operation is not None:
                    operations.append(operation)
    return operations


def _parse_alter_action(table: str, action: str) -> Optional[SqlOperation]:
    """Parse one comma-separated action of an ALTER TABLE statement."""
    text = action.strip()

    foreign_key = _FOREIGN_KEY_RE.search(text)
    if re.match(r"ADD\s+(?:CONSTRAINT\s+\S+\s+)?FOREIGN\s+KEY", text, re.I) and foreign_key:
        return SqlOperation(
            kind="add_relation",
            table=table,
            relation=RelationSpec(
                column=unquote_identifier(foreign_key.group(1)),
                references_table=unquote_identifier(foreign_key.group(2)),
                references_column=unquote_identifier(foreign_key.group(3) or "id"),
            ),
        )
    keyword = re.match(r"(?:ADD|DROP)\s+(\w+)", text, re.I)
    if keyword and keyword.group(1).upper() in _TABLE_CONSTRAINT_WORDS:
        return None

    add = re.match(r"ADD\s+(?:COLUMN\s+)?(?:IF\s+NOT\s+EXISTS\s+)?(.*)$", text, re.I | re.S)
    if add:
        column, relation = parse_column_definition(add.group(1))
        return SqlOperation(kind="add_column", table=table, column=column, relation=relation)

    drop = re.match(rf"DROP\s+(?:COLUMN\s+)?(?:IF\s+EXISTS\s+)?({_IDENT})", text, re.I)
    if drop:
        return SqlOperation(kind="drop_column", table=table, column_name=unquote_identifier(drop.group(1)))

    retype = re.match(
        rf"ALTER\s+(?:COLUMN\s+)?({_IDENT})\s+(?:SET\s+DATA\s+)?TYPE\s+(.+?)(?:\s+USING\s+.*)?$",
        text,
        re.I | re.S,
    )
    if retype:
        return SqlOperation(
            kind="alter_type",
            table=table,
            column_name=unquote_identifier(retype.group(1)),
            new_type=retype.group(2).strip(),
        )

    nullability = re.match(rf"ALTER\s+(?:COLUMN\s+)?({_IDENT})\s+(SET|DROP)\s+NOT\s+NULL", text, re.I)
    if nullability:
        return SqlOperation(
            kind="alter_nullability",
            table=table,
            column_name=unquote_identifier(nullability.group(1)),
            nullable=nullability.group(2).upper() == "DROP",
        )

    rename = re.match(rf"RENAME\s+(?:COLUMN\s+)?({_IDENT})\s+TO\s+({_IDENT})", text, re.I)
    if rename and rename.group(1).upper() != "TO":
        return SqlOperation(
            kind="rename_column",
            table=table,
            column_name=unquote_identifier(rename.group(1)),
            new_name=unquote_identifier(rename.group(2)),
        )

    rename_table = _RENAME_TABLE_RE.match(text)
    if rename_table:
        return SqlOperation(
            kind="rename_table",
            table=table,
            new_name=unquote_identifier(rename_table.group(1)),
        )
    return None
