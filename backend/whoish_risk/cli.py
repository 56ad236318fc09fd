"""Command-line batch scorer.

Usage:
    whoish-risk score --model who-2019 --subregion WES_EUR --input patients.csv
    whoish-risk score --model who-ish --subregion EUR_A --input patients.csv --output scored.csv
    whoish-risk subregions --model who-ish

The input CSV needs the columns age, sex, smoking, sbp, diabetes, cholesterol.
All input columns are written back with age_group, sbp_group,
cholesterol_group and risk appended. Unmatched rows get an empty risk.
"""

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import TextIO

from whoish_risk.core.config import settings
from whoish_risk.services.cvd_risk import CVDRiskService, UnknownSubregionError
from whoish_risk.services.reference_table import ReferenceTableError
from whoish_risk.services.risk_models import ClinicalObservation, ModelVariant, coerce_flag

logger = logging.getLogger(__name__)

INPUT_COLUMNS = ("age", "sex", "smoking", "sbp", "diabetes", "cholesterol")
OUTPUT_COLUMNS = ("age_group", "sbp_group", "cholesterol_group", "risk")


class InputFileError(ValueError):
    """Raised when the patients CSV cannot be used."""


def _number(value: str | None, column: str, line: int) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InputFileError(f"Line {line}: column {column!r} is not numeric: {value!r}") from None


def read_observations(stream: TextIO) -> tuple[list[dict[str, str]], list[ClinicalObservation]]:
    """Read patient rows and their observations from a CSV stream."""
    reader = csv.DictReader(stream)
    missing = [c for c in INPUT_COLUMNS if c not in (reader.fieldnames or [])]
    if missing:
        raise InputFileError(f"Input is missing columns: {', '.join(missing)}")

    rows = []
    observations = []
    # line 1 is the header
    for line, row in enumerate(reader, start=2):
        values = {c: _number(row.get(c), c, line) for c in INPUT_COLUMNS}
        rows.append(row)
        observations.append(
            ClinicalObservation(
                age=values["age"],
                sex=coerce_flag(values["sex"]),
                smoking=coerce_flag(values["smoking"]),
                systolic_bp=values["sbp"],
                diabetes=coerce_flag(values["diabetes"]),
                cholesterol=values["cholesterol"],
            )
        )
    return rows, observations


def score_file(
    service: CVDRiskService,
    model: str,
    subregion: str,
    source: TextIO,
    target: TextIO,
) -> int:
    """Score every row of source and write the annotated CSV to target.

    Returns:
        Number of rows with a chart match.
    """
    rows, observations = read_observations(source)
    results = service.calculate(model, observations, subregion)

    fieldnames = list(rows[0].keys()) if rows else list(INPUT_COLUMNS)
    writer = csv.DictWriter(target, fieldnames=fieldnames + list(OUTPUT_COLUMNS))
    writer.writeheader()
    for row, result in zip(rows, results):
        writer.writerow(
            {
                **row,
                "age_group": result.labels.age or "",
                "sbp_group": result.labels.systolic_bp or "",
                "cholesterol_group": result.labels.cholesterol or "",
                "risk": "" if result.value is None else result.value,
            }
        )

    matched = sum(1 for r in results if r.matched)
    logger.info(f"Scored {len(results)} rows, {matched} matched, {len(results) - matched} without a chart value")
    return matched


def _cmd_score(args: argparse.Namespace) -> int:
    service = CVDRiskService(data_dir=args.data_dir)
    with open(args.input, "r", newline="", encoding="utf-8-sig") as source:
        if args.output is None:
            score_file(service, args.model, args.subregion, source, sys.stdout)
        else:
            with open(args.output, "w", newline="", encoding="utf-8") as target:
                score_file(service, args.model, args.subregion, source, target)
            logger.info(f"Wrote {args.output}")
    return 0


def _cmd_subregions(args: argparse.Namespace) -> int:
    service = CVDRiskService(data_dir=args.data_dir)
    for code, name in service.get_subregions(args.model).items():
        print(f"{code:<12} {name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whoish-risk",
        description="Look up 10-year CVD risk from the WHO/ISH and WHO 2019 risk charts",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help=f"Directory containing the chart CSVs (default: {settings.data_dir})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help="Logging level (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    models = [v.value for v in ModelVariant]

    score = subparsers.add_parser("score", help="Score a CSV of patients")
    score.add_argument("--model", choices=models, required=True, help="Chart model")
    score.add_argument("--subregion", required=True, help="Subregion code, e.g. WES_EUR or EUR_A")
    score.add_argument("--input", type=Path, required=True, help="Patients CSV")
    score.add_argument("--output", type=Path, default=None, help="Output CSV (default: stdout)")
    score.set_defaults(func=_cmd_score)

    subregions = subparsers.add_parser("subregions", help="List subregion codes for a model")
    subregions.add_argument("--model", choices=models, required=True, help="Chart model")
    subregions.set_defaults(func=_cmd_subregions)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return args.func(args)
    except (UnknownSubregionError, InputFileError, OSError) as e:
        logger.error(str(e))
        return 1
    except ReferenceTableError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
