"""Pydantic schemas for WHO/ISH CVD Risk."""

from whoish_risk.schemas.risk import (
    ModelInfo,
    ModelListResponse,
    ObservationIn,
    RiskRequest,
    RiskResponse,
    RiskResultOut,
    SubregionOut,
)

__all__ = [
    "ModelInfo",
    "ModelListResponse",
    "ObservationIn",
    "RiskRequest",
    "RiskResponse",
    "RiskResultOut",
    "SubregionOut",
]
