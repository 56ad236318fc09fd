"""CVD Risk API Endpoints.

Provides endpoints for WHO chart based 10-year CVD risk lookup:
- List chart models and their subregions
- Batch lookup against the WHO 2019 charts
- Batch lookup against the WHO/ISH charts
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from whoish_risk.core.config import settings
from whoish_risk.schemas.risk import (
    ModelInfo,
    ModelListResponse,
    ObservationIn,
    RiskRequest,
    RiskResponse,
    RiskResultOut,
    SubregionOut,
)
from whoish_risk.services.cvd_risk import (
    CVDRiskService,
    UnknownSubregionError,
    get_cvd_risk_service,
)
from whoish_risk.services.reference_table import ReferenceTableError
from whoish_risk.services.risk_models import (
    ClinicalObservation,
    ModelVariant,
    RiskResult,
    coerce_flag,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/risk", tags=["CVD Risk"])


# ============================================================================
# Helper Functions
# ============================================================================


def _to_observation(item: ObservationIn) -> ClinicalObservation:
    return ClinicalObservation(
        age=item.age,
        sex=coerce_flag(item.sex),
        smoking=coerce_flag(item.smoking),
        systolic_bp=item.systolic_bp,
        diabetes=coerce_flag(item.diabetes),
        cholesterol=item.cholesterol,
    )


def _result_to_response(result: RiskResult) -> RiskResultOut:
    """Convert RiskResult to API response model."""
    return RiskResultOut(
        index=result.index,
        age_group=result.labels.age,
        cholesterol_group=result.labels.cholesterol,
        sbp_group=result.labels.systolic_bp,
        composite_key=result.composite_key,
        risk=result.value,
        matched=result.matched,
        warnings=result.warnings,
    )


def _run_lookup(
    service: CVDRiskService,
    variant: ModelVariant,
    request: RiskRequest,
) -> RiskResponse:
    if len(request.observations) > settings.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Too many observations: {len(request.observations)} "
            f"(max {settings.max_batch_size})",
        )

    observations = [_to_observation(item) for item in request.observations]
    try:
        results = service.calculate(variant, observations, request.subregion)
    except UnknownSubregionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReferenceTableError as e:
        logger.error(f"Chart table unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    matched = sum(1 for r in results if r.matched)
    return RiskResponse(
        model=variant.value,
        subregion=request.subregion.strip(),
        total=len(results),
        matched_count=matched,
        unmatched_count=len(results) - matched,
        results=[_result_to_response(r) for r in results],
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/models",
    response_model=ModelListResponse,
    summary="List chart models",
    description="List the available WHO risk chart models and the subregion codes each accepts.",
)
async def list_models(
    service: CVDRiskService = Depends(get_cvd_risk_service),
) -> ModelListResponse:
    models = []
    for code, name in service.get_available_models().items():
        subregions = service.get_subregions(code)
        models.append(
            ModelInfo(
                model=code,
                name=name,
                subregions=[SubregionOut(code=c, name=n) for c, n in subregions.items()],
                references=service.get_references(code),
            )
        )
    return ModelListResponse(models=models, total_count=len(models))


@router.post(
    "/who-2019",
    response_model=RiskResponse,
    summary="WHO 2019 10-year CVD risk",
    description="Look up the revised 2019 WHO chart risk (%) for a batch of patients "
    "in one of the 21 GBD subregions. Unmatched rows return a null risk.",
)
async def who_2019_risk(
    request: RiskRequest,
    service: CVDRiskService = Depends(get_cvd_risk_service),
) -> RiskResponse:
    return _run_lookup(service, ModelVariant.WHO_2019, request)


@router.post(
    "/who-ish",
    response_model=RiskResponse,
    summary="WHO/ISH 10-year CVD risk",
    description="Look up the WHO/ISH chart risk level for a batch of patients "
    "in one of the 14 WHO epidemiological subregions. Unmatched rows return a null risk.",
)
async def who_ish_risk(
    request: RiskRequest,
    service: CVDRiskService = Depends(get_cvd_risk_service),
) -> RiskResponse:
    return _run_lookup(service, ModelVariant.WHO_ISH, request)
