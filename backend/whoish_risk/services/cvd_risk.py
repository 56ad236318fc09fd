"""CVD Risk Lookup Service.

Retrieves 10-year cardiovascular risk from the WHO risk chart tables:

- WHO 2019 revised charts: numeric % risk for 21 GBD subregions
- WHO/ISH charts: risk level ("<10%", "20%-<30%", ...) for 14 WHO subregions

Nothing is computed from a formula. Each observation is binned, turned into a
composite key and matched exactly against the chart table; the requested
subregion column is read from the matching row.

Usage:
    service = get_cvd_risk_service()

    results = service.calculate_who_2019(
        [ClinicalObservation(age=52, sex=1, smoking=0, systolic_bp=130,
                             diabetes=0, cholesterol=5.2)],
        subregion="WES_EUR",
    )
"""

import logging
from collections.abc import Iterable, Sequence
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Any

from whoish_risk.core.config import settings
from whoish_risk.services.binning import classify_who_2019, classify_who_ish
from whoish_risk.services.plausibility import check_observation
from whoish_risk.services.reference_table import ReferenceTable, load_reference_table
from whoish_risk.services.risk_keys import build_who_2019_key, build_who_ish_key
from whoish_risk.services.risk_models import (
    WHO_2019_SUBREGION_NAMES,
    WHO_ISH_SUBREGION_NAMES,
    CategoryLabels,
    ClinicalObservation,
    ModelVariant,
    RiskModel,
    RiskResult,
    RiskValue,
    WHO2019Subregion,
    WHOISHSubregion,
    coerce_flag,
    parse_percentage,
    parse_risk_level,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Chart Models
# ============================================================================

WHO_2019_MODEL = RiskModel(
    variant=ModelVariant.WHO_2019,
    name="WHO 2019 10-year CVD risk",
    subregions=WHO2019Subregion,
    subregion_names=WHO_2019_SUBREGION_NAMES,
    classify=classify_who_2019,
    build_key=build_who_2019_key,
    parse_value=parse_percentage,
    table_setting="who_2019_table_file",
    references=(
        "WHO CVD Risk Chart Working Group. World Health Organization "
        "cardiovascular disease risk charts: revised models to estimate risk "
        "in 21 global regions. Lancet Glob Health 2019.",
    ),
)

WHO_ISH_MODEL = RiskModel(
    variant=ModelVariant.WHO_ISH,
    name="WHO/ISH 10-year CVD risk",
    subregions=WHOISHSubregion,
    subregion_names=WHO_ISH_SUBREGION_NAMES,
    classify=classify_who_ish,
    build_key=build_who_ish_key,
    parse_value=parse_risk_level,
    table_setting="who_ish_table_file",
    references=(
        "World Health Organization. Prevention of cardiovascular disease: "
        "WHO/ISH risk prediction charts for the 14 WHO epidemiological "
        "sub-regions. Geneva 2007.",
    ),
)

RISK_MODELS: dict[ModelVariant, RiskModel] = {
    ModelVariant.WHO_2019: WHO_2019_MODEL,
    ModelVariant.WHO_ISH: WHO_ISH_MODEL,
}


class UnknownSubregionError(ValueError):
    """Raised when a subregion code is not part of the model's subregion set."""

    def __init__(self, model: RiskModel, subregion: object) -> None:
        self.subregion = subregion
        self.available = model.subregion_codes
        super().__init__(
            f"Unknown subregion for {model.name}: {subregion!r}. "
            f"Available: {', '.join(self.available)}"
        )


def resolve_subregion(model: RiskModel, subregion: str | Enum) -> Enum:
    """Validate a subregion code against the model's enumerated set.

    Raises:
        UnknownSubregionError: If the code is not recognised by the model.
    """
    if isinstance(subregion, model.subregions):
        return subregion
    if isinstance(subregion, Enum) or not isinstance(subregion, str):
        raise UnknownSubregionError(model, subregion)
    try:
        return model.subregions(subregion.strip())
    except ValueError:
        raise UnknownSubregionError(model, subregion) from None


# ============================================================================
# Lookup Engine
# ============================================================================


class RiskLookupEngine:
    """Joins binned observations against one chart table.

    The table is read-only after load, so an engine can be shared freely
    between requests and threads.
    """

    def __init__(self, table: ReferenceTable) -> None:
        self._table = table
        self._model = table.model

    @property
    def model(self) -> RiskModel:
        return self._model

    @property
    def table(self) -> ReferenceTable:
        return self._table

    def classify(self, observation: ClinicalObservation) -> CategoryLabels:
        return self._model.classify(observation)

    def score(
        self,
        observations: Sequence[ClinicalObservation],
        subregion: str | Enum,
    ) -> list[RiskResult]:
        """Look up risk for a batch of observations.

        The subregion is validated before any row is processed. Results come
        back in input order; rows whose key does not match the table carry a
        None value.

        Raises:
            UnknownSubregionError: If the subregion is not valid for the model.
        """
        region = resolve_subregion(self._model, subregion)
        column = self._table.column(region)

        results = []
        findings: dict[str, None] = {}
        for index, observation in enumerate(observations):
            labels = self.classify(observation)
            key = self._model.build_key(labels)
            position = self._table.position(key)
            warnings = check_observation(observation)
            findings.update(dict.fromkeys(warnings))
            results.append(
                RiskResult(
                    index=index,
                    labels=labels,
                    composite_key=key,
                    value=None if position is None else column[position],
                    warnings=warnings,
                )
            )

        for message in findings:
            logger.warning(message)

        matched = sum(1 for r in results if r.matched)
        logger.debug(
            f"{self._model.name} [{region.value}]: matched {matched}/{len(results)} rows"
        )
        return results

    def score_values(
        self,
        observations: Sequence[ClinicalObservation],
        subregion: str | Enum,
    ) -> list[RiskValue]:
        """Same as score() but returns only the risk values."""
        return [r.value for r in self.score(observations, subregion)]


# ============================================================================
# Service
# ============================================================================


class CVDRiskService:
    """Service for WHO chart based cardiovascular risk lookup.

    Chart tables are loaded on first use (or all at once by preload()) and
    kept for the life of the process.

    Usage:
        service = CVDRiskService()
        service.preload()

        results = service.calculate("who-ish", observations, "EUR_A")
    """

    def __init__(
        self,
        tables: Iterable[ReferenceTable] | None = None,
        data_dir: Path | str | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            tables: Pre-loaded tables; models without one load from disk.
            data_dir: Directory holding the chart CSVs (default: settings.data_dir).
        """
        self._data_dir = Path(data_dir) if data_dir is not None else None
        self._engines: dict[ModelVariant, RiskLookupEngine] = {}
        self._lock = Lock()
        for table in tables or ():
            self._engines[table.model.variant] = RiskLookupEngine(table)

    def _resolve_variant(self, variant: ModelVariant | str) -> ModelVariant:
        if isinstance(variant, ModelVariant):
            return variant
        name = str(variant).strip().lower().replace("_", "-")
        try:
            return ModelVariant(name)
        except ValueError:
            available = ", ".join(v.value for v in ModelVariant)
            raise ValueError(f"Unknown model: {variant}. Available: {available}") from None

    def _table_path(self, model: RiskModel) -> Path:
        data_dir = self._data_dir if self._data_dir is not None else Path(settings.data_dir)
        return data_dir / getattr(settings, model.table_setting)

    def get_engine(self, variant: ModelVariant | str) -> RiskLookupEngine:
        """Get the lookup engine for a model, loading its table if needed.

        Raises:
            ValueError: If the model is unknown.
            ReferenceTableError: If the chart table cannot be loaded.
        """
        variant = self._resolve_variant(variant)
        engine = self._engines.get(variant)
        if engine is None:
            with self._lock:
                engine = self._engines.get(variant)
                if engine is None:
                    model = RISK_MODELS[variant]
                    table = load_reference_table(model, self._table_path(model))
                    engine = RiskLookupEngine(table)
                    self._engines[variant] = engine
        return engine

    def preload(self) -> dict[str, Any]:
        """Load every chart table now. Errors propagate to the caller."""
        for variant in ModelVariant:
            self.get_engine(variant)
        return self.get_stats()

    def calculate(
        self,
        variant: ModelVariant | str,
        observations: Sequence[ClinicalObservation],
        subregion: str | Enum,
    ) -> list[RiskResult]:
        """Run a batch lookup against one chart model.

        Raises:
            ValueError: If the model is unknown.
            UnknownSubregionError: If the subregion is not valid for the model.
        """
        model = RISK_MODELS[self._resolve_variant(variant)]
        # Fail fast on the subregion before touching the table
        resolve_subregion(model, subregion)
        return self.get_engine(model.variant).score(observations, subregion)

    def calculate_who_2019(
        self,
        observations: Sequence[ClinicalObservation],
        subregion: str | WHO2019Subregion,
    ) -> list[RiskResult]:
        return self.calculate(ModelVariant.WHO_2019, observations, subregion)

    def calculate_who_ish(
        self,
        observations: Sequence[ClinicalObservation],
        subregion: str | WHOISHSubregion,
    ) -> list[RiskResult]:
        return self.calculate(ModelVariant.WHO_ISH, observations, subregion)

    def get_available_models(self) -> dict[str, str]:
        """Get available chart models with descriptions."""
        return {variant.value: model.name for variant, model in RISK_MODELS.items()}

    def get_subregions(self, variant: ModelVariant | str) -> dict[str, str]:
        """Get subregion codes and names for a model."""
        model = RISK_MODELS[self._resolve_variant(variant)]
        return {region.value: model.subregion_names[region] for region in model.subregions}

    def get_references(self, variant: ModelVariant | str) -> list[str]:
        """Get the publications a model's charts come from."""
        return list(RISK_MODELS[self._resolve_variant(variant)].references)

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about loaded chart tables.

        Returns:
            Dictionary with service statistics.
        """
        return {
            "total_models": len(RISK_MODELS),
            "loaded_models": sorted(v.value for v in self._engines),
            "tables": {
                variant.value: engine.table.get_stats()
                for variant, engine in self._engines.items()
            },
        }


# Singleton instance and lock
_cvd_risk_service: CVDRiskService | None = None
_cvd_risk_lock = Lock()


def get_cvd_risk_service() -> CVDRiskService:
    """Get the singleton CVDRiskService instance.

    Returns:
        The singleton CVDRiskService instance.
    """
    global _cvd_risk_service

    if _cvd_risk_service is None:
        with _cvd_risk_lock:
            if _cvd_risk_service is None:
                logger.info("Creating singleton CVDRiskService instance")
                _cvd_risk_service = CVDRiskService()

    return _cvd_risk_service


def reset_cvd_risk_service() -> None:
    """Reset the singleton instance (for testing)."""
    global _cvd_risk_service
    with _cvd_risk_lock:
        _cvd_risk_service = None


# ============================================================================
# Column-vector entry points
# ============================================================================


_FLAG_FIELDS = ("sex", "smoking", "diabetes")


def _as_column(value: object) -> list | None:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return None
    return list(value)


def _as_number(value: object) -> object:
    """Parse numeric text ("52" -> 52.0); other text (e.g. "NA") is missing."""
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return value


def _build_observations(
    age: object,
    sex: object,
    smoking: object,
    sbp: object,
    diabetes: object,
    cholesterol: object,
) -> list[ClinicalObservation]:
    """Zip per-field columns into observations; scalars are broadcast."""
    fields = {
        "age": age,
        "sex": sex,
        "smoking": smoking,
        "systolic_bp": sbp,
        "diabetes": diabetes,
        "cholesterol": cholesterol,
    }
    columns = {name: _as_column(value) for name, value in fields.items()}
    lengths = {len(col) for col in columns.values() if col is not None}
    if len(lengths) > 1:
        raise ValueError(f"Input columns have different lengths: {sorted(lengths)}")
    n_rows = lengths.pop() if lengths else 1

    def cell(name: str, row: int) -> Any:
        col = columns[name]
        value = _as_number(fields[name] if col is None else col[row])
        return coerce_flag(value) if name in _FLAG_FIELDS else value

    return [
        ClinicalObservation(**{name: cell(name, row) for name in fields})
        for row in range(n_rows)
    ]


def _engine_for(model: RiskModel, table: ReferenceTable | None) -> RiskLookupEngine:
    if table is None:
        return get_cvd_risk_service().get_engine(model.variant)
    if table.model.variant != model.variant:
        raise ValueError(
            f"{model.name} needs its own table, got a {table.model.name} table"
        )
    return RiskLookupEngine(table)


def who_2019_risk(
    age: object,
    sex: object,
    smoking: object,
    sbp: object,
    diabetes: object,
    cholesterol: object,
    subregion: str | WHO2019Subregion,
    table: ReferenceTable | None = None,
) -> list[float | None]:
    """WHO 2019 10-year CVD risk (%) for columns of patient values.

    Args:
        age: Age in years.
        sex: 1 = male, 0 = female.
        smoking: 1 = current smoker, 0 = non-smoker.
        sbp: Systolic blood pressure (mmHg).
        diabetes: 1 = diabetic, 0 = non-diabetic.
        cholesterol: Total cholesterol (mmol/L).
        subregion: GBD subregion code, e.g. "WES_EUR".
        table: WHO 2019 chart table (default: the service's table).

    Returns:
        One risk value per row, None where the row has no chart match.
    """
    resolve_subregion(WHO_2019_MODEL, subregion)
    observations = _build_observations(age, sex, smoking, sbp, diabetes, cholesterol)
    return _engine_for(WHO_2019_MODEL, table).score_values(observations, subregion)


def who_ish_risk(
    age: object,
    sex: object,
    smoking: object,
    sbp: object,
    diabetes: object,
    cholesterol: object,
    subregion: str | WHOISHSubregion,
    table: ReferenceTable | None = None,
) -> list[str | None]:
    """WHO/ISH 10-year CVD risk level for columns of patient values.

    Arguments are as for who_2019_risk(); subregion is a WHO epidemiological
    subregion code such as "EUR_A".
    """
    resolve_subregion(WHO_ISH_MODEL, subregion)
    observations = _build_observations(age, sex, smoking, sbp, diabetes, cholesterol)
    return _engine_for(WHO_ISH_MODEL, table).score_values(observations, subregion)
