"""Services for WHO/ISH CVD Risk.

Services implement the chart lookup:
- Bin classification of clinical inputs (binning)
- Composite key construction (risk_keys)
- Reference chart tables (reference_table)
- Batch lookup engine and CVDRiskService (cvd_risk)
"""

from whoish_risk.services.cvd_risk import (
    RISK_MODELS,
    WHO_2019_MODEL,
    WHO_ISH_MODEL,
    CVDRiskService,
    RiskLookupEngine,
    UnknownSubregionError,
    get_cvd_risk_service,
    reset_cvd_risk_service,
    who_2019_risk,
    who_ish_risk,
)
from whoish_risk.services.reference_table import (
    ReferenceTable,
    ReferenceTableError,
    load_reference_table,
)
from whoish_risk.services.risk_models import (
    CategoryLabels,
    ClinicalObservation,
    ModelVariant,
    RiskResult,
    WHO2019Subregion,
    WHOISHSubregion,
)

__all__ = [
    # Lookup
    "CVDRiskService",
    "RiskLookupEngine",
    "UnknownSubregionError",
    "get_cvd_risk_service",
    "reset_cvd_risk_service",
    "who_2019_risk",
    "who_ish_risk",
    # Models
    "RISK_MODELS",
    "WHO_2019_MODEL",
    "WHO_ISH_MODEL",
    "ModelVariant",
    "WHO2019Subregion",
    "WHOISHSubregion",
    # Types
    "CategoryLabels",
    "ClinicalObservation",
    "RiskResult",
    # Tables
    "ReferenceTable",
    "ReferenceTableError",
    "load_reference_table",
]
