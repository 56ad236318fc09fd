"""API routers for WHO/ISH CVD Risk."""

from whoish_risk.api.risk import router as risk_router

__all__ = [
    "risk_router",
]
