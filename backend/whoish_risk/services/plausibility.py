"""Advisory plausibility checks for chart inputs.

Findings are informational only. They never stop a lookup; an implausible
value simply tends to produce an unmatched key.
"""

from whoish_risk.services.risk_models import ClinicalObservation

AGE_TOO_LOW = "At least one age is 18 or younger"
AGE_TOO_HIGH = "At least one age is greater than 100"
SEX_NOT_BINARY = "Gender must be equal to 0 or 1"
SMOKING_NOT_BINARY = "Smoking must be equal to 0 or 1"
SBP_TOO_LOW = "At least one systolic blood pressure is below 90 mmHg"
SBP_TOO_HIGH = "At least one systolic blood pressure is over 250 mmHg"
DIABETES_NOT_BINARY = "Diabetes status must be equal to 0 or 1"
CHOLESTEROL_TOO_HIGH = (
    "At least one total cholesterol is greater than 10 mmol/L. "
    "Ensure all values are in units of mmol/L"
)


def _not_binary(value: object) -> bool:
    return value not in (0, 1)


def check_observation(observation: ClinicalObservation) -> list[str]:
    """Return the advisory findings for one observation (empty if plausible).

    Messages are shared constants so a batch can report each finding once.
    """
    findings = []
    if observation.age is not None and observation.age < 19:
        findings.append(AGE_TOO_LOW)
    if observation.age is not None and observation.age > 100:
        findings.append(AGE_TOO_HIGH)
    if _not_binary(observation.sex):
        findings.append(SEX_NOT_BINARY)
    if _not_binary(observation.smoking):
        findings.append(SMOKING_NOT_BINARY)
    if observation.systolic_bp is not None and observation.systolic_bp < 90:
        findings.append(SBP_TOO_LOW)
    if observation.systolic_bp is not None and observation.systolic_bp > 250:
        findings.append(SBP_TOO_HIGH)
    if _not_binary(observation.diabetes):
        findings.append(DIABETES_NOT_BINARY)
    if observation.cholesterol is not None and observation.cholesterol > 10:
        findings.append(CHOLESTEROL_TOO_HIGH)
    return findings
