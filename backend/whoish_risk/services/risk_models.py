"""CVD Risk Model Definitions.

Domain types shared by the binning, key-building and lookup layers, and the
subregion sets of the two WHO risk chart models:

- WHO 2019 revised charts (21 GBD subregions, numeric % risk)
- WHO/ISH charts (14 WHO epidemiological subregions, categorical risk level)

Each model is a RiskModel record (instances live in cvd_risk) bundling its
own binning scheme, composite-key convention and subregion set.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Union

RiskValue = Union[float, str, None]


class ModelVariant(str, Enum):
    """Supported risk chart models."""

    WHO_2019 = "who-2019"
    WHO_ISH = "who-ish"


class WHO2019Subregion(str, Enum):
    """GBD subregions of the 2019 WHO charts. Values are table column names."""

    N_AFR_ME = "N_AFR_ME"
    CSS_AFR = "CSS_AFR"
    ESS_AFR = "ESS_AFR"
    SSS_AFR = "SSS_AFR"
    WSS_AFR = "WSS_AFR"
    SN_LAT_AME = "SN_LAT_AME"
    HI_N_AME = "HI_N_AME"
    CAR = "CAR"
    AND_LAT_AME = "AND_LAT_AME"
    CEN_LAT_AME = "CEN_LAT_AME"
    TRO_LAT_AME = "TRO_LAT_AME"
    EAS_ASI = "EAS_ASI"
    SOU_ASI = "SOU_ASI"
    SE_ASI = "SE_ASI"
    CEN_ASI = "CEN_ASI"
    HI_ASI_PAC = "HI_ASI_PAC"
    WES_EUR = "WES_EUR"
    CEN_EUR = "CEN_EUR"
    EAS_EUR = "EAS_EUR"
    OCE = "OCE"
    AUS = "AUS"


class WHOISHSubregion(str, Enum):
    """WHO epidemiological subregions of the WHO/ISH charts."""

    AFR_D = "AFR_D"
    AFR_E = "AFR_E"
    AMR_A = "AMR_A"
    AMR_B = "AMR_B"
    AMR_D = "AMR_D"
    EMR_B = "EMR_B"
    EMR_D = "EMR_D"
    EUR_A = "EUR_A"
    EUR_B = "EUR_B"
    EUR_C = "EUR_C"
    SEAR_B = "SEAR_B"
    SEAR_D = "SEAR_D"
    WPR_A = "WPR_A"
    WPR_B = "WPR_B"


WHO_2019_SUBREGION_NAMES: dict[WHO2019Subregion, str] = {
    WHO2019Subregion.N_AFR_ME: "North Africa and Middle East",
    WHO2019Subregion.CSS_AFR: "Central Sub-Saharan Africa",
    WHO2019Subregion.ESS_AFR: "Eastern Sub-Saharan Africa",
    WHO2019Subregion.SSS_AFR: "Southern Sub-Saharan Africa",
    WHO2019Subregion.WSS_AFR: "Western Sub-Saharan Africa",
    WHO2019Subregion.SN_LAT_AME: "Southern Latin America",
    WHO2019Subregion.HI_N_AME: "High-income North America",
    WHO2019Subregion.CAR: "Caribbean",
    WHO2019Subregion.AND_LAT_AME: "Andean Latin America",
    WHO2019Subregion.CEN_LAT_AME: "Central Latin America",
    WHO2019Subregion.TRO_LAT_AME: "Tropical Latin America",
    WHO2019Subregion.EAS_ASI: "East Asia",
    WHO2019Subregion.SOU_ASI: "South Asia",
    WHO2019Subregion.SE_ASI: "Southeast Asia",
    WHO2019Subregion.CEN_ASI: "Central Asia",
    WHO2019Subregion.HI_ASI_PAC: "High-income Asia Pacific",
    WHO2019Subregion.WES_EUR: "Western Europe",
    WHO2019Subregion.CEN_EUR: "Central Europe",
    WHO2019Subregion.EAS_EUR: "Eastern Europe",
    WHO2019Subregion.OCE: "Oceania",
    WHO2019Subregion.AUS: "Australasia",
}

WHO_ISH_SUBREGION_NAMES: dict[WHOISHSubregion, str] = {
    WHOISHSubregion.AFR_D: "Africa, high child and high adult mortality",
    WHOISHSubregion.AFR_E: "Africa, high child and very high adult mortality",
    WHOISHSubregion.AMR_A: "Americas, very low child and adult mortality",
    WHOISHSubregion.AMR_B: "Americas, low child and adult mortality",
    WHOISHSubregion.AMR_D: "Americas, high child and adult mortality",
    WHOISHSubregion.EMR_B: "Eastern Mediterranean, low child and adult mortality",
    WHOISHSubregion.EMR_D: "Eastern Mediterranean, high child and adult mortality",
    WHOISHSubregion.EUR_A: "Europe, very low child and adult mortality",
    WHOISHSubregion.EUR_B: "Europe, low child and adult mortality",
    WHOISHSubregion.EUR_C: "Europe, low child and high adult mortality",
    WHOISHSubregion.SEAR_B: "South-East Asia, low child and adult mortality",
    WHOISHSubregion.SEAR_D: "South-East Asia, high child and adult mortality",
    WHOISHSubregion.WPR_A: "Western Pacific, very low child and adult mortality",
    WHOISHSubregion.WPR_B: "Western Pacific, low child and adult mortality",
}


# Reference table key columns, in composite-key order
KEY_COLUMNS: tuple[str, ...] = ("age", "gdr", "dm", "smk", "sbp", "chl")


@dataclass(frozen=True)
class ClinicalObservation:
    """One patient's inputs to a risk chart.

    Binary fields use 1 = yes / male and 0 = no / female.
    """

    age: float
    sex: int
    smoking: int
    systolic_bp: float
    diabetes: int
    cholesterol: float


@dataclass(frozen=True)
class CategoryLabels:
    """Binned representation of an observation; None marks an unclassified field."""

    age: str | None
    sex: str | None
    diabetes: str | None
    smoking: str | None
    systolic_bp: str | None
    cholesterol: str | None

    def as_tuple(self) -> tuple[str | None, ...]:
        """Labels in composite-key order (age, sex, diabetes, smoking, sbp, chl)."""
        return (
            self.age,
            self.sex,
            self.diabetes,
            self.smoking,
            self.systolic_bp,
            self.cholesterol,
        )

    @property
    def is_complete(self) -> bool:
        return all(label is not None for label in self.as_tuple())


@dataclass(frozen=True)
class ReferenceRow:
    """One row of a reference table."""

    labels: CategoryLabels
    key: str
    values: dict[str, RiskValue]


@dataclass
class RiskResult:
    """Lookup outcome for one observation."""

    index: int
    labels: CategoryLabels
    composite_key: str | None
    value: RiskValue
    warnings: list[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class RiskModel:
    """A risk chart model: its binning scheme, key convention and subregions."""

    variant: ModelVariant
    name: str
    subregions: type[Enum]
    subregion_names: dict
    classify: Callable[[ClinicalObservation], CategoryLabels]
    build_key: Callable[[CategoryLabels], str | None]
    parse_value: Callable[[str | None], RiskValue]
    table_setting: str
    references: tuple[str, ...] = ()

    @property
    def subregion_codes(self) -> list[str]:
        return [s.value for s in self.subregions]


def parse_percentage(raw: str | None) -> float | None:
    """Parse a numeric 2019 risk cell. Raises ValueError on non-numeric text."""
    if raw is None:
        return None
    text = str(raw).strip()
    if text == "" or text.upper() == "NA":
        return None
    return float(text)


def parse_risk_level(raw: str | None) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    if text == "" or text.upper() == "NA":
        return None
    return text


def coerce_flag(value: object) -> object:
    """Render an integral float flag as int (1.0 -> 1).

    Other values pass through unchanged so the plausibility check still sees
    them; a non-binary flag only ever causes a lookup miss.
    """
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
