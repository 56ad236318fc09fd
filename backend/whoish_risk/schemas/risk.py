"""Pydantic schemas for CVD risk lookup requests and responses."""

from pydantic import BaseModel, Field


class ObservationIn(BaseModel):
    """One patient's chart inputs."""

    age: float = Field(..., description="Age in years")
    sex: float = Field(..., description="1 = male, 0 = female")
    smoking: float = Field(..., description="1 = current smoker, 0 = non-smoker")
    systolic_bp: float = Field(..., description="Systolic blood pressure (mmHg)")
    diabetes: float = Field(..., description="1 = diabetic, 0 = non-diabetic")
    cholesterol: float = Field(..., description="Total cholesterol (mmol/L)")


class RiskRequest(BaseModel):
    """Batch risk lookup request for one subregion."""

    subregion: str = Field(..., description="Subregion code, e.g. 'WES_EUR' or 'EUR_A'")
    observations: list[ObservationIn] = Field(
        ..., min_length=1, description="Observations to score, in order"
    )


class RiskResultOut(BaseModel):
    """Lookup outcome for one observation."""

    index: int
    age_group: str | None = None
    cholesterol_group: str | None = None
    sbp_group: str | None = None
    composite_key: str | None = None
    risk: float | str | None = Field(None, description="Chart value, null if unmatched")
    matched: bool
    warnings: list[str] = Field(default_factory=list)


class RiskResponse(BaseModel):
    """Batch risk lookup response; results follow request order."""

    model: str
    subregion: str
    total: int
    matched_count: int
    unmatched_count: int
    results: list[RiskResultOut]


class SubregionOut(BaseModel):
    code: str
    name: str


class ModelInfo(BaseModel):
    """A chart model with its subregions."""

    model: str
    name: str
    subregions: list[SubregionOut]
    references: list[str] = Field(default_factory=list)


class ModelListResponse(BaseModel):
    models: list[ModelInfo]
    total_count: int
