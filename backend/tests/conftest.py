"""Pytest configuration and fixtures for backend tests.

The chart tables used here are synthetic full grids: every key combination
of each model is present once, with made-up values that identify the cell.
They carry no epidemiological meaning.
"""

import csv
import itertools
from pathlib import Path

import pytest

from whoish_risk.core.config import settings
from whoish_risk.services.cvd_risk import (
    WHO_2019_MODEL,
    WHO_ISH_MODEL,
    CVDRiskService,
    reset_cvd_risk_service,
)
from whoish_risk.services.reference_table import ReferenceTable
from whoish_risk.services.risk_models import WHO2019Subregion, WHOISHSubregion

WHO_2019_AGE_GROUPS = ["40-44", "45-49", "50-54", "55-59", "60-64", "65-69", "70-74"]
WHO_2019_SBP_GROUPS = ["<120", "120-139", "140-159", "160-179", ">=180"]
WHO_2019_CHL_GROUPS = ["<4", "4-4.9", "5-5.9", "6-6.9", ">=7"]

WHO_ISH_AGES = ["40", "50", "60", "70"]
WHO_ISH_SBPS = ["120", "140", "160", "180"]
WHO_ISH_CHLS = ["4", "5", "6", "7", "8"]
WHO_ISH_LEVELS = ["<10%", "10%-<20%", "20%-<30%", "30%-<40%", ">=40%"]


def build_who_2019_records() -> list[dict[str, str]]:
    """Full 2019 grid; the value "<row>.<subregion index>" is unique per cell."""
    records = []
    grid = itertools.product(
        WHO_2019_AGE_GROUPS, "01", "01", "01", WHO_2019_SBP_GROUPS, WHO_2019_CHL_GROUPS
    )
    for i, (age, gdr, dm, smk, sbp, chl) in enumerate(grid):
        row = {"age": age, "gdr": gdr, "dm": dm, "smk": smk, "sbp": sbp, "chl": chl}
        for j, region in enumerate(WHO2019Subregion):
            row[region.value] = f"{i + 1}.{j:02d}"
        records.append(row)
    return records


def build_who_ish_records() -> list[dict[str, str]]:
    records = []
    grid = itertools.product(WHO_ISH_AGES, "01", "01", "01", WHO_ISH_SBPS, WHO_ISH_CHLS)
    for i, (age, gdr, dm, smk, sbp, chl) in enumerate(grid):
        row = {"age": age, "gdr": gdr, "dm": dm, "smk": smk, "sbp": sbp, "chl": chl}
        for j, region in enumerate(WHOISHSubregion):
            row[region.value] = WHO_ISH_LEVELS[(i + j) % len(WHO_ISH_LEVELS)]
        records.append(row)
    return records


def find_record(records: list[dict[str, str]], **key: str) -> dict[str, str]:
    """Return the single record whose key columns equal the given values."""
    matches = [r for r in records if all(r[column] == value for column, value in key.items())]
    assert len(matches) == 1
    return matches[0]


def write_chart_csv(path: Path, records: list[dict[str, str]]) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(records[0].keys()))
        writer.writeheader()
        writer.writerows(records)
    return path


@pytest.fixture
def who_2019_records() -> list[dict[str, str]]:
    return build_who_2019_records()


@pytest.fixture
def who_ish_records() -> list[dict[str, str]]:
    return build_who_ish_records()


@pytest.fixture
def who_2019_table(who_2019_records) -> ReferenceTable:
    return ReferenceTable.from_records(WHO_2019_MODEL, who_2019_records)


@pytest.fixture
def who_ish_table(who_ish_records) -> ReferenceTable:
    return ReferenceTable.from_records(WHO_ISH_MODEL, who_ish_records)


@pytest.fixture
def chart_dir(tmp_path, who_2019_records, who_ish_records) -> Path:
    """Directory holding both chart CSVs under their configured file names."""
    write_chart_csv(tmp_path / settings.who_2019_table_file, who_2019_records)
    write_chart_csv(tmp_path / settings.who_ish_table_file, who_ish_records)
    return tmp_path


@pytest.fixture
def service(who_2019_table, who_ish_table) -> CVDRiskService:
    """Service with both synthetic tables already resident."""
    return CVDRiskService(tables=[who_2019_table, who_ish_table])


@pytest.fixture(autouse=True)
def _reset_singleton():
    reset_cvd_risk_service()
    yield
    reset_cvd_risk_service()
