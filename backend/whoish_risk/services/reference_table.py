"""Reference Table Service.

In-memory, read-only risk chart tables. Each row holds the six key labels
(age, gdr, dm, smk, sbp, chl) and one risk value per subregion column.

Tables are loaded once per process from the chart CSV assets. A malformed or
missing asset raises ReferenceTableError at load time so that no lookup is
ever attempted against a bad table.
"""

import csv
import logging
import time
from collections.abc import Iterable, Iterator, Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from whoish_risk.services.risk_keys import normalize_label
from whoish_risk.services.risk_models import (
    KEY_COLUMNS,
    CategoryLabels,
    ReferenceRow,
    RiskModel,
    RiskValue,
)

logger = logging.getLogger(__name__)


class ReferenceTableError(ValueError):
    """Raised when a reference table asset is missing or malformed."""


def _labels_from_record(record: Mapping[str, object]) -> CategoryLabels:
    age, gdr, dm, smk, sbp, chl = (normalize_label(record.get(c)) for c in KEY_COLUMNS)
    return CategoryLabels(
        age=age,
        sex=gdr,
        diabetes=dm,
        smoking=smk,
        systolic_bp=sbp,
        cholesterol=chl,
    )


class ReferenceTable:
    """Column-oriented reference table for one chart model.

    The subregion code doubles as the column accessor, and an index from
    composite key to row position drives the join. When a key occurs more
    than once the first row in table order wins.
    """

    def __init__(
        self,
        model: RiskModel,
        labels: list[CategoryLabels],
        columns: dict[str, list[RiskValue]],
        source: str | None = None,
    ) -> None:
        self._model = model
        self._labels = labels
        self._columns = columns
        self._source = source
        self._keys: list[str] = []
        self._index: dict[str, int] = {}
        self._duplicate_keys: list[str] = []

        for position, row_labels in enumerate(labels):
            key = model.build_key(row_labels)
            if key is None:
                raise ReferenceTableError(
                    f"{model.name} table row {position + 1} has an empty key field"
                )
            self._keys.append(key)
            if key in self._index:
                self._duplicate_keys.append(key)
            else:
                self._index[key] = position

        if self._duplicate_keys:
            logger.warning(
                f"{model.name} table has {len(self._duplicate_keys)} duplicate keys "
                f"(first row wins), e.g. {self._duplicate_keys[0]!r}"
            )

    @classmethod
    def from_records(
        cls,
        model: RiskModel,
        records: Iterable[Mapping[str, Any]],
        source: str | None = None,
    ) -> "ReferenceTable":
        """Build a table from pre-parsed rows (dicts keyed by column name).

        Raises:
            ReferenceTableError: If the rows are empty, a key or subregion
                column is missing, or a risk value cannot be parsed.
        """
        records = list(records)
        if not records:
            raise ReferenceTableError(f"{model.name} reference table is empty")

        required = list(KEY_COLUMNS) + model.subregion_codes
        present = set(records[0].keys())
        missing = [column for column in required if column not in present]
        if missing:
            raise ReferenceTableError(
                f"{model.name} reference table is missing columns: {', '.join(missing)}"
            )

        labels: list[CategoryLabels] = []
        columns: dict[str, list[RiskValue]] = {code: [] for code in model.subregion_codes}

        for line, record in enumerate(records, start=1):
            labels.append(_labels_from_record(record))
            for code in model.subregion_codes:
                raw = record.get(code)
                try:
                    columns[code].append(model.parse_value(raw))
                except (TypeError, ValueError) as e:
                    raise ReferenceTableError(
                        f"{model.name} table row {line}, column {code}: "
                        f"invalid risk value {raw!r} ({e})"
                    ) from e

        return cls(model, labels, columns, source=source)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def model(self) -> RiskModel:
        return self._model

    @property
    def row_count(self) -> int:
        return len(self._labels)

    @property
    def duplicate_keys(self) -> list[str]:
        return list(self._duplicate_keys)

    def column(self, subregion: Enum) -> list[RiskValue]:
        """Risk values for one subregion, in table order."""
        return self._columns[subregion.value]

    def position(self, key: str | None) -> int | None:
        """Row position matching the composite key exactly, or None."""
        if key is None:
            return None
        return self._index.get(key)

    def lookup(self, key: str | None, subregion: Enum) -> RiskValue:
        """Risk value for a composite key in one subregion column, or None."""
        position = self.position(key)
        if position is None:
            return None
        return self.column(subregion)[position]

    def rows(self) -> Iterator[ReferenceRow]:
        """Iterate rows in table order."""
        codes = self._model.subregion_codes
        for position, row_labels in enumerate(self._labels):
            yield ReferenceRow(
                labels=row_labels,
                key=self._keys[position],
                values={code: self._columns[code][position] for code in codes},
            )

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the table.

        Returns:
            Dictionary with table statistics.
        """
        return {
            "model": self._model.variant.value,
            "source": self._source,
            "rows": self.row_count,
            "distinct_keys": len(self._index),
            "duplicate_keys": len(self._duplicate_keys),
            "subregions": len(self._columns),
        }


def load_reference_table(model: RiskModel, path: Path | str) -> ReferenceTable:
    """Load a chart table from a CSV file with a header row.

    Args:
        model: The chart model the file belongs to.
        path: Path to the CSV asset.

    Returns:
        The loaded ReferenceTable.

    Raises:
        ReferenceTableError: If the file is missing or malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise ReferenceTableError(f"{model.name} reference table not found: {path}")

    start_time = time.perf_counter()
    try:
        with open(path, "r", newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            records = list(reader)
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise ReferenceTableError(f"Could not read {model.name} reference table {path}: {e}") from e

    table = ReferenceTable.from_records(model, records, source=str(path))
    load_time_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"Loaded {model.name} table from {path}: {table.row_count} rows, "
        f"{len(model.subregion_codes)} subregions in {load_time_ms:.1f}ms"
    )
    return table
