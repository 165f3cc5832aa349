from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_confidence(value) -> int | None:
    """Convert a confidence score to an integer percentage.

    Floats in ``[0, 1]`` (including strings such as ``"0.85"``) are read as
    fractions and scaled by 100; integers are already percentages. The result
    is rounded and clamped to ``0..100``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    fractional = isinstance(value, float) or (isinstance(value, str) and "." in value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if fractional and 0 <= number <= 1:
        number *= 100
    return max(0, min(100, round(number)))


class Finding(BaseModel):
    """Single observation returned by the analysis model."""
    description: str
    confidence: int = Field(default=75, ge=0, le=100, description="Confidence on a 0-100 scale")
    severity: str = "Normal"
    location: str | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _scale_confidence(cls, value):
        normalized = normalize_confidence(value)
        return 75 if normalized is None else normalized


class AnalysisResult(BaseModel):
    """Structured analysis of one medical image."""
    model_config = ConfigDict(populate_by_name=True)

    findings: list[Finding] = Field(min_length=1)
    overall_assessment: str = Field(alias="overallAssessment")
    recommendations: list[str] = Field(default_factory=list)
    urgency: str = "Low"
