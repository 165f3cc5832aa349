import random
import time
from collections.abc import Iterator

from mediscan.timeutil import utcnow

ENHANCEMENT_STEPS = [
    "Analyzing image quality...",
    "Applying noise reduction...",
    "Enhancing contrast and brightness...",
    "Performing medical analysis...",
    "Generating diagnostic insights...",
    "Finalizing report...",
]


def run_enhancement_steps(delay_seconds: float) -> Iterator[tuple[str, int]]:
    """Yield ``(step, progress_percent)`` after each simulated processing step."""
    total = len(ENHANCEMENT_STEPS)
    for index, step in enumerate(ENHANCEMENT_STEPS, start=1):
        time.sleep(delay_seconds)
        yield step, round(index * 100 / total)


def enhanced_image_url(report_id: int) -> str:
    timestamp_ms = int(utcnow().timestamp() * 1000)
    return f"/enhanced-{report_id}-{timestamp_ms}.jpg"


def build_enhancement_results(image_type: str | None, body_part: str | None, rng: random.Random | None = None) -> dict:
    rng = rng or random.Random()
    image_type = image_type or "Medical"
    body_part = body_part or "the examined"
    return {
        "findings": [
            f"{image_type} image shows normal anatomical structures",
            f"No obvious abnormalities detected in {body_part} region",
            "Image quality is sufficient for diagnostic evaluation",
            "Recommend clinical correlation with patient symptoms",
        ],
        "recommendations": [
            "Continue routine monitoring if asymptomatic",
            "Consult with radiologist for detailed interpretation",
            "Consider follow-up imaging if symptoms persist",
            "Maintain regular health check-ups",
        ],
        "riskLevel": "low",
        "confidence": rng.randint(80, 99),
    }
