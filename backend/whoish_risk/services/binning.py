"""Bin Classifier.

Converts raw clinical measurements into the categorical labels used as
reference table keys. Each chart model has its own scheme:

- WHO 2019: labelled bands ("50-54", "5-5.9", "120-139") with strict
  inequalities on cholesterol and blood pressure, so a value sitting exactly
  on a band edge (e.g. cholesterol 5.0, SBP 140) is left unclassified.
- WHO/ISH: values collapse onto representative chart values
  (age 40/50/60/70, cholesterol 4-8, SBP 120/140/160/180) using half-open bands.

Classification never raises. A value outside every band yields None for that
field, which later produces an unmatched composite key.
"""

import math

from whoish_risk.services.risk_keys import normalize_label
from whoish_risk.services.risk_models import CategoryLabels, ClinicalObservation


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return math.isnan(float(value))
    except (TypeError, ValueError):
        return True


# ============================================================================
# WHO 2019 Scheme
# ============================================================================


def who_2019_age_group(age: float | None) -> str | None:
    """Bin age (years) into a 2019 chart age band.

    Any age outside the 18-69 bands lands in "70-74": ages above 69 have no
    upper limit, and ages of 17 or below are not rejected either (they only
    raise the advisory age finding).
    """
    if _is_missing(age):
        return None
    if 17 < age <= 44:
        return "40-44"
    elif 44 < age <= 49:
        return "45-49"
    elif 49 < age <= 54:
        return "50-54"
    elif 54 < age <= 59:
        return "55-59"
    elif 59 < age <= 64:
        return "60-64"
    elif 64 < age <= 69:
        return "65-69"
    return "70-74"


def who_2019_cholesterol_group(cholesterol: float | None) -> str | None:
    """Bin total cholesterol (mmol/L); integer edges 4, 5, 6, 7 stay unclassified."""
    if _is_missing(cholesterol):
        return None
    if 0 < cholesterol < 4:
        return "<4"
    elif 4 < cholesterol < 5:
        return "4-4.9"
    elif 5 < cholesterol < 6:
        return "5-5.9"
    elif 6 < cholesterol < 7:
        return "6-6.9"
    elif cholesterol > 7:
        return ">=7"
    return None


def who_2019_sbp_group(systolic_bp: float | None) -> str | None:
    """Bin systolic BP (mmHg); edges 120, 140, 160, 180 stay unclassified."""
    if _is_missing(systolic_bp):
        return None
    if 0 < systolic_bp < 120:
        return "<120"
    elif 120 < systolic_bp < 140:
        return "120-139"
    elif 140 < systolic_bp < 160:
        return "140-159"
    elif 160 < systolic_bp < 180:
        return "160-179"
    elif systolic_bp > 180:
        return ">=180"
    return None


def classify_who_2019(observation: ClinicalObservation) -> CategoryLabels:
    """Bin one observation for the WHO 2019 charts."""
    return CategoryLabels(
        age=who_2019_age_group(observation.age),
        sex=normalize_label(observation.sex),
        diabetes=normalize_label(observation.diabetes),
        smoking=normalize_label(observation.smoking),
        systolic_bp=who_2019_sbp_group(observation.systolic_bp),
        cholesterol=who_2019_cholesterol_group(observation.cholesterol),
    )


# ============================================================================
# WHO/ISH Scheme
# ============================================================================


def who_ish_age_group(age: float | None) -> str | None:
    """Collapse age onto the chart ages 40, 50, 60, 70."""
    if _is_missing(age):
        return None
    if 18 <= age < 50:
        return "40"
    elif 50 <= age < 60:
        return "50"
    elif 60 <= age < 70:
        return "60"
    elif age >= 70:
        return "70"
    return None


def who_ish_cholesterol_group(cholesterol: float | None) -> str | None:
    """Collapse total cholesterol (mmol/L) onto the chart values 4-8."""
    if _is_missing(cholesterol):
        return None
    if 0 < cholesterol < 4.5:
        return "4"
    elif 4.5 <= cholesterol < 5.5:
        return "5"
    elif 5.5 <= cholesterol < 6.5:
        return "6"
    elif 6.5 <= cholesterol < 7.5:
        return "7"
    elif cholesterol >= 7.5:
        return "8"
    return None


def who_ish_sbp_group(systolic_bp: float | None) -> str | None:
    """Collapse systolic BP (mmHg) onto the chart values 120-180."""
    if _is_missing(systolic_bp):
        return None
    if 0 < systolic_bp < 140:
        return "120"
    elif 140 <= systolic_bp < 160:
        return "140"
    elif 160 <= systolic_bp < 180:
        return "160"
    elif systolic_bp >= 180:
        return "180"
    return None


def classify_who_ish(observation: ClinicalObservation) -> CategoryLabels:
    """Bin one observation for the WHO/ISH charts."""
    return CategoryLabels(
        age=who_ish_age_group(observation.age),
        sex=normalize_label(observation.sex),
        diabetes=normalize_label(observation.diabetes),
        smoking=normalize_label(observation.smoking),
        systolic_bp=who_ish_sbp_group(observation.systolic_bp),
        cholesterol=who_ish_cholesterol_group(observation.cholesterol),
    )
