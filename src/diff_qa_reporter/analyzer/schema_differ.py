"""
Schema differ - turns schema snapshots and migrations into SchemaDeltas.

Snapshot files (Prisma schemas and non-migration SQL) are parsed at both
sides and compared table by table. Migration scripts are parsed into
operations, which describe tables no snapshot covers and feed the data
impact assessment. Each migration is checked for a down migration to
decide reversibility.
"""

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Optional

from diff_qa_reporter.collector.sources import ContentReader
from diff_qa_reporter.errors import UnparseableFileError
from diff_qa_reporter.models.change import ChangeRecord
from diff_qa_reporter.models.diff import ChangeStatus
from diff_qa_reporter.models.report import ReviewNote
from diff_qa_reporter.models.schema import (
    ColumnChangeType,
    ColumnDelta,
    ColumnSpec,
    MigrationInfo,
    RelationDelta,
    SchemaChangeType,
    SchemaDelta,
    TableSpec,
)
from diff_qa_reporter.parser.schema_parser import (
    SqlOperation,
    parse_prisma_schema,
    parse_sql_migration,
    parse_sql_schema,
)

logger = logging.getLogger(__name__)

NO_DATA_IMPACT = "None"


def is_down_migration(path: str) -> bool:
    """Check whether a path is a down (rollback) migration."""
    p = PurePosixPath(path)
    return p.name == "down.sql" or p.name.endswith(".down.sql") or "down" in p.parts[:-1]


def is_migration(path: str) -> bool:
    """Check whether a path is an up migration script."""
    p = PurePosixPath(path)
    return p.suffix == ".sql" and "migrations" in p.parts[:-1] and not is_down_migration(path)


def is_schema_snapshot(path: str) -> bool:
    """Check whether a path is a schema snapshot (Prisma or plain SQL)."""
    p = PurePosixPath(path)
    if p.suffix == ".prisma":
        return True
    return p.suffix == ".sql" and "migrations" not in p.parts[:-1] and not is_down_migration(path)


def migration_name(path: str) -> str:
    """
    Derive a migration's name from its path.

    `prisma/migrations/20240501_add_fitara/migration.sql` and
    `db/migrations/20240501_add_fitara.up.sql` both give
    `20240501_add_fitara`.
    """
    p = PurePosixPath(path)
    if p.name in ("migration.sql", "up.sql"):
        return p.parent.name
    return p.stem.removesuffix(".up")


def down_migration_candidates(path: str) -> list[str]:
    """Paths where the down migration for an up migration may live."""
    p = PurePosixPath(path)
    name = migration_name(path)
    directory = p.parent
    candidates = [
        directory / f"{name}.down.sql",
        directory / "down" / f"{name}.sql",
        directory.parent / "down" / f"{name}.sql",
    ]
    if p.name in ("migration.sql", "up.sql"):
        candidates = [directory / "down.sql", directory / "migration.down.sql"] + candidates
    return [str(c) for c in candidates]


@dataclass
class SchemaDiffResult:
    """Output of the schema differ."""

    deltas: list[SchemaDelta] = field(default_factory=list)
    migrations: list[MigrationInfo] = field(default_factory=list)
    notes: list[ReviewNote] = field(default_factory=list)


def _column_added(column: ColumnSpec) -> ColumnDelta:
    return ColumnDelta(
        name=column.name,
        change_type=ColumnChangeType.ADDED,
        type_after=column.type,
        nullable=column.nullable,
        has_default=column.default is not None,
    )


def _column_dropped(column: ColumnSpec) -> ColumnDelta:
    return ColumnDelta(
        name=column.name,
        change_type=ColumnChangeType.DROPPED,
        type_before=column.type,
    )


def _needs_backfill(column: ColumnSpec) -> bool:
    return not column.nullable and column.default is None and not column.primary_key


def diff_tables(
    before: list[TableSpec],
    after: list[TableSpec],
    source_file: str = "",
) -> list[SchemaDelta]:
    """
    Compare two schema snapshots table by table.

    Returns:
        Deltas for new and modified tables in head order, then deleted
        tables in base order. Each carries its data impact.
    """
    before_map = {t.name: t for t in before}
    after_map = {t.name: t for t in after}
    deltas: list[SchemaDelta] = []

    for table in after:
        old = before_map.get(table.name)
        if old is None:
            deltas.append(
                SchemaDelta(
                    table=table.name,
                    change_type=SchemaChangeType.NEW,
                    columns=[_column_added(c) for c in table.columns],
                    relations=[
                        RelationDelta(relation=r, change_type=ColumnChangeType.ADDED)
                        for r in table.relations
                    ],
                    source_file=source_file,
                )
            )
            continue

        columns: list[ColumnDelta] = []
        impacts: list[str] = []
        for column in old.columns:
            if table.column(column.name) is None:
                columns.append(_column_dropped(column))
                impacts.append(f"Data loss: column `{column.name}` dropped")
        for column in table.columns:
            previous = old.column(column.name)
            if previous is None:
                columns.append(_column_added(column))
                if _needs_backfill(column):
                    impacts.append(
                        f"Backfill required: `{column.name}` is NOT NULL without a default"
                    )
                continue
            if previous == column:
                continue
            columns.append(
                ColumnDelta(
                    name=column.name,
                    change_type=ColumnChangeType.MODIFIED,
                    type_before=previous.type,
                    type_after=column.type,
                    nullable=column.nullable,
                    has_default=column.default is not None,
                )
            )
            if previous.type != column.type:
                impacts.append(
                    f"Conversion: `{column.name}` {previous.type} -> {column.type}"
                )
            if previous.nullable and not column.nullable and column.default is None:
                impacts.append(f"Backfill NULLs in `{column.name}` before enforcing NOT NULL")

        relations = [
            RelationDelta(relation=r, change_type=ColumnChangeType.DROPPED)
            for r in old.relations if r not in table.relations
        ] + [
            RelationDelta(relation=r, change_type=ColumnChangeType.ADDED)
            for r in table.relations if r not in old.relations
        ]

        if columns or relations:
            deltas.append(
                SchemaDelta(
                    table=table.name,
                    change_type=SchemaChangeType.MODIFIED,
                    columns=columns,
                    relations=relations,
                    data_impact="; ".join(impacts) or NO_DATA_IMPACT,
                    source_file=source_file,
                )
            )

    for table in before:
        if table.name in after_map:
            continue
        deltas.append(
            SchemaDelta(
                table=table.name,
                change_type=SchemaChangeType.DELETED,
                columns=[_column_dropped(c) for c in table.columns],
                relations=[
                    RelationDelta(relation=r, change_type=ColumnChangeType.DROPPED)
                    for r in table.relations
                ],
                data_impact="Data loss: table dropped",
                source_file=source_file,
            )
        )
    return deltas


class _TableAccumulator:
    """Collects the operations of a migration that touch one table."""

    def __init__(self, table: str, source_file: str) -> None:
        self.table = table
        self.source_file = source_file
        self.change_type = SchemaChangeType.MODIFIED
        self.columns: list[ColumnDelta] = []
        self.relations: list[RelationDelta] = []
        self.impacts: list[str] = []

    def apply(self, op: SqlOperation) -> None:
        if op.kind == "create_table" and op.table_spec is not None:
            self.change_type = SchemaChangeType.NEW
            self.columns.extend(_column_added(c) for c in op.table_spec.columns)
            self.relations.extend(
                RelationDelta(relation=r, change_type=ColumnChangeType.ADDED)
                for r in op.table_spec.relations
            )
        elif op.kind == "drop_table":
            self.change_type = SchemaChangeType.DELETED
            self.impacts.append("Data loss: table dropped")
        elif op.kind == "add_column" and op.column is not None:
            self.columns.append(_column_added(op.column))
            if op.relation is not None:
                self.relations.append(
                    RelationDelta(relation=op.relation, change_type=ColumnChangeType.ADDED)
                )
            if self.change_type != SchemaChangeType.NEW and _needs_backfill(op.column):
                self.impacts.append(
                    f"Backfill required: `{op.column.name}` is NOT NULL without a default"
                )
        elif op.kind == "drop_column":
            self.columns.append(
                ColumnDelta(name=op.column_name, change_type=ColumnChangeType.DROPPED)
            )
            self.impacts.append(f"Data loss: column `{op.column_name}` dropped")
        elif op.kind == "alter_type":
            self.columns.append(
                ColumnDelta(
                    name=op.column_name,
                    change_type=ColumnChangeType.MODIFIED,
                    type_after=op.new_type,
                )
            )
            self.impacts.append(f"Conversion: `{op.column_name}` -> {op.new_type}")
        elif op.kind == "alter_nullability":
            self.columns.append(
                ColumnDelta(
                    name=op.column_name,
                    change_type=ColumnChangeType.MODIFIED,
                    nullable=op.nullable,
                )
            )
            if op.nullable is False:
                self.impacts.append(
                    f"Backfill NULLs in `{op.column_name}` before enforcing NOT NULL"
                )
        elif op.kind == "rename_column":
            self.columns.append(
                ColumnDelta(
                    name=f"{op.column_name} -> {op.new_name}",
                    change_type=ColumnChangeType.MODIFIED,
                )
            )
        elif op.kind == "rename_table":
            self.impacts.append(f"Table renamed to `{op.new_name}`")
        elif op.kind == "add_relation" and op.relation is not None:
            self.relations.append(
                RelationDelta(relation=op.relation, change_type=ColumnChangeType.ADDED)
            )
        elif op.kind == "data":
            self.impacts.append(f"Data migration: {op.new_name} on `{self.table}`")

    def to_delta(self) -> SchemaDelta:
        return SchemaDelta(
            table=self.table,
            change_type=self.change_type,
            columns=self.columns,
            relations=self.relations,
            data_impact="; ".join(dict.fromkeys(self.impacts)) or NO_DATA_IMPACT,
            source_file=self.source_file,
        )


class SchemaDiffer:
    """
    Compute schema deltas and migration info for Database change records.
    """

    def __init__(self, reader: ContentReader) -> None:
        """
        Initialize the differ.

        Args:
            reader: Source of file contents at both sides of the change.
        """
        self.reader = reader

    @staticmethod
    def _parse_snapshot(path: str, content: str) -> list[TableSpec]:
        if path.endswith(".prisma"):
            return parse_prisma_schema(content, path)
        return parse_sql_schema(content, path)

    def _snapshot_side(self, record: ChangeRecord, side: str) -> list[TableSpec]:
        if side == "before":
            if record.status == ChangeStatus.ADDED:
                return []
            path, content = record.base_path, self.reader.read_before(record.base_path)
        else:
            if record.status == ChangeStatus.DELETED:
                return []
            path, content = record.path, self.reader.read_after(record.path)
        if content is None:
            raise UnparseableFileError(path, "file content unavailable")
        return self._parse_snapshot(path, content)

    def _locate_down(self, path: str, known_paths: set[str]) -> Optional[str]:
        for candidate in down_migration_candidates(path):
            if candidate in known_paths:
                return candidate
        return None

    def diff(self, records: list[ChangeRecord]) -> SchemaDiffResult:
        """
        Diff all Database change records.

        Args:
            records: Change records categorized as Database.

        Returns:
            SchemaDiffResult with deltas, located migrations and review
            notes for files that could not be parsed.
        """
        result = SchemaDiffResult()

        tree = self.reader.tree_paths()
        changed = {r.path for r in records if r.status != ChangeStatus.DELETED}
        known_paths = (tree or set()) | changed

        # Schema snapshots
        for record in records:
            if not is_schema_snapshot(record.path):
                continue
            try:
                before = self._snapshot_side(record, "before")
                after = self._snapshot_side(record, "after")
            except UnparseableFileError as e:
                logger.warning("Skipping schema diff for %s: %s", e.path, e.reason)
                result.notes.append(ReviewNote(path=e.path, reason=e.reason))
                continue
            result.deltas.extend(diff_tables(before, after, record.path))

        # Migrations
        operations: list[tuple[MigrationInfo, list[SqlOperation]]] = []
        for record in records:
            if not is_migration(record.path):
                continue
            if record.status == ChangeStatus.DELETED:
                result.notes.append(
                    ReviewNote(path=record.path, reason="migration file deleted")
                )
                continue

            ops: list[SqlOperation] = []
            content = self.reader.read_after(record.path)
            try:
                if content is None:
                    raise UnparseableFileError(record.path, "file content unavailable")
                ops = parse_sql_migration(content, record.path)
            except UnparseableFileError as e:
                logger.warning("Cannot parse migration %s: %s", e.path, e.reason)
                result.notes.append(ReviewNote(path=e.path, reason=e.reason))

            down_path = self._locate_down(record.path, known_paths)
            if down_path is not None:
                reversible: Optional[bool] = True
            elif tree is not None:
                reversible = False
            else:
                reversible = None

            migration = MigrationInfo(
                name=migration_name(record.path),
                path=record.path,
                down_path=down_path,
                tables=list(dict.fromkeys(op.table for op in ops)),
                reversible=reversible,
            )
            logger.debug(
                "Migration %s touches %s (reversible=%s)",
                migration.name, migration.tables, migration.reversible,
            )
            result.migrations.append(migration)
            operations.append((migration, ops))

        # Tables only described by migrations
        covered = {d.table for d in result.deltas}
        accumulators: dict[str, _TableAccumulator] = {}
        data_impacts: dict[str, list[str]] = {}
        for migration, ops in operations:
            for op in ops:
                if op.table in covered:
                    if op.kind in ("data", "drop_table", "drop_column"):
                        scratch = _TableAccumulator(op.table, migration.path)
                        scratch.apply(op)
                        data_impacts.setdefault(op.table, []).extend(scratch.impacts)
                    continue
                if op.table not in accumulators:
                    accumulators[op.table] = _TableAccumulator(op.table, migration.path)
                accumulators[op.table].apply(op)
        result.deltas.extend(acc.to_delta() for acc in accumulators.values())

        result.deltas = [
            self._attach(delta, result.migrations, data_impacts.get(delta.table, []))
            for delta in result.deltas
        ]
        return result

    @staticmethod
    def _attach(
        delta: SchemaDelta,
        migrations: list[MigrationInfo],
        extra_impacts: list[str],
    ) -> SchemaDelta:
        """Link a delta to its migration and merge migration data impacts."""
        migration = next((m for m in migrations if delta.table in m.tables), None)
        if migration is None and len(migrations) == 1:
            migration = migrations[0]

        impacts = [] if delta.data_impact == NO_DATA_IMPACT else [delta.data_impact]
        impacts.extend(i for i in extra_impacts if i not in delta.data_impact)
        return delta.model_copy(
            update={
                "migration_name": migration.name if migration else None,
                "reversible": migration.reversible if migration else None,
                "data_impact": "; ".join(dict.fromkeys(impacts)) or NO_DATA_IMPACT,
            }
        )
