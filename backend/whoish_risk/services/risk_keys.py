"""Key Builder.

Builds the composite lookup key from six category labels. The same builder
is applied to input observations and to reference table rows, so both sides
go through normalize_label().

Conventions differ per model and must not be swapped:
- WHO 2019 joins labels with "_" ("50-54_1_0_0_120-139_5-5.9")
- WHO/ISH concatenates with no delimiter ("60011406"); this relies on the
  fixed-width integer labels (2-digit age, 1-digit flags, 3-digit SBP,
  1-digit cholesterol) to stay collision free.
"""

import math

from whoish_risk.services.risk_models import CategoryLabels

WHO_2019_KEY_DELIMITER = "_"
WHO_ISH_KEY_DELIMITER = ""


def normalize_label(value: object) -> str | None:
    """Render a label the way it appears in a composite key.

    Integral numbers lose their decimals (4.0 -> "4"), text is stripped, and
    missing values (None, NaN, "", "NA") become None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return None
        return str(int(value)) if value.is_integer() else str(value)

    text = str(value).strip()
    if text == "" or text.upper() == "NA":
        return None
    try:
        number = float(text)
    except ValueError:
        return text
    if math.isnan(number):
        return None
    return str(int(number)) if number.is_integer() else text


def _join(labels: CategoryLabels, delimiter: str) -> str | None:
    parts = labels.as_tuple()
    if any(part is None for part in parts):
        return None
    return delimiter.join(parts)


def build_who_2019_key(labels: CategoryLabels) -> str | None:
    """Composite key for the WHO 2019 table; None if any field is unclassified."""
    return _join(labels, WHO_2019_KEY_DELIMITER)


def build_who_ish_key(labels: CategoryLabels) -> str | None:
    """Composite key for the WHO/ISH table; None if any field is unclassified."""
    return _join(labels, WHO_ISH_KEY_DELIMITER)
