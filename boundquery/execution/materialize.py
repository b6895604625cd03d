from __future__ import annotations

from enum import Enum
from typing import Any, Sequence

from boundquery.execution.errors import MetadataError

# ==================================================
# Result Materialization
# ==================================================

ResultRow = dict[str, Any]


class DuplicateColumnPolicy(str, Enum):
    """
    How row keys are chosen when a result set repeats a column name.

    ALIAS keeps the first column under its name and renames later ones
    ``name_2``, ``name_3`` and so on. REJECT raises MetadataError. LAST_WINS
    keeps a single key holding the value of the last column with that name.
    """

    ALIAS = "alias"
    REJECT = "reject"
    LAST_WINS = "last_wins"


def _column_name(descriptor: Any) -> str:
    name = descriptor[0]
    if isinstance(name, (bytes, bytearray)):
        return bytes(name).decode("utf-8")
    return str(name)


class ResultMaterializer:
    """
    Reads a cursor's result metadata and rows into plain dict records.
    """

    def __init__(self, duplicate_columns: DuplicateColumnPolicy = DuplicateColumnPolicy.ALIAS) -> None:
        self.duplicate_columns = DuplicateColumnPolicy(duplicate_columns)

    def column_names(self, cursor: Any) -> list[str]:
        description = getattr(cursor, "description", None)
        if not description:
            raise MetadataError.from_message(
                operation="materialize",
                message="The statement produced no result set metadata.",
            )
        return [_column_name(descriptor) for descriptor in description]

    def row_keys(self, column_names: Sequence[str]) -> list[str]:
        if self.duplicate_columns is DuplicateColumnPolicy.LAST_WINS:
            return list(column_names)

        keys: list[str] = []
        taken: set[str] = set()
        for name in column_names:
            if name not in taken:
                keys.append(name)
                taken.add(name)
                continue
            if self.duplicate_columns is DuplicateColumnPolicy.REJECT:
                raise MetadataError.from_message(
                    operation="materialize",
                    message=f"Column name {name!r} appears more than once in the result set.",
                )
            suffix = 2
            while f"{name}_{suffix}" in taken or f"{name}_{suffix}" in column_names:
                suffix += 1
            alias = f"{name}_{suffix}"
            keys.append(alias)
            taken.add(alias)
        return keys

    def materialize(self, cursor: Any) -> tuple[list[str], list[ResultRow]]:
        names = self.column_names(cursor)
        keys = self.row_keys(names)

        rows: list[ResultRow] = []
        while True:
            row = cursor.fetchone()
            if row is None:
                break
            if len(row) != len(keys):
                raise MetadataError.from_message(
                    operation="materialize",
                    message=f"Row has {len(row)} value(s) but the result set declares {len(keys)} column(s).",
                )
            record: ResultRow = {}
            for key, value in zip(keys, row):
                record[key] = value
            rows.append(record)
        return names, rows
