"""Report email rendering and (simulated) delivery.

No mail provider is wired in: :func:`send_email` logs the message and reports
success, so the rest of the flow behaves as it would with a real sender.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from html import escape

from mediscan.config import settings

logger = logging.getLogger(__name__)

TRANSLATIONS = {
    "en": {
        "subject": "Medical Report - {image_type} Analysis",
        "greeting": "Dear Patient,",
        "report_ready": "Your medical image analysis report is ready.",
        "report_details": "Report Details",
        "image_type": "Image Type",
        "body_part": "Body Part",
        "diagnosis": "Diagnosis",
        "confidence_score": "Confidence Score",
        "risk_level": "Risk Level",
        "key_findings": "Key Findings",
        "recommendations": "Recommendations",
        "disclaimer": "Medical Disclaimer",
        "disclaimer_text": (
            "This AI analysis is for informational purposes only and should not replace professional "
            "medical diagnosis. Always consult with qualified healthcare professionals."
        ),
        "footer": "Thank you for using MediScan AI",
        "view_online": "View Full Report Online",
    },
}


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html: str
    text: str


@dataclass
class ReportEmail:
    id: int
    patient_name: str
    image_type: str
    body_part: str
    diagnosis: str
    confidence_score: int
    risk_level: str
    created_at: datetime
    findings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


def _finding_text(finding) -> str:
    if isinstance(finding, dict):
        return str(finding.get("description", ""))
    return str(finding)


def report_email_from_results(
    report_id: int,
    patient_name: str,
    image_type: str | None,
    body_part: str | None,
    confidence_score: int | None,
    analysis_results: dict | None,
    created_at: datetime,
) -> ReportEmail:
    """Flatten stored enhancement or analysis results into an email view."""
    results = analysis_results or {}
    diagnosis = results.get("diagnosis") or results.get("overallAssessment") or "Analysis pending"
    risk_level = results.get("riskLevel") or results.get("urgency") or "unknown"
    return ReportEmail(
        id=report_id,
        patient_name=patient_name,
        image_type=image_type or "Unknown",
        body_part=body_part or "Unknown",
        diagnosis=diagnosis,
        confidence_score=confidence_score or 0,
        risk_level=str(risk_level).lower(),
        created_at=created_at,
        findings=[_finding_text(item) for item in results.get("findings", [])],
        recommendations=[str(item) for item in results.get("recommendations", [])],
    )


def render_report_email(report: ReportEmail, language: str = "en", site_url: str | None = None) -> EmailTemplate:
    t = TRANSLATIONS.get(language, TRANSLATIONS["en"])
    subject = t["subject"].format(image_type=report.image_type)
    report_url = f"{(site_url or settings.site_url).rstrip('/')}/reports/{report.id}"
    generated_on = report.created_at.strftime("%Y-%m-%d")

    details = [
        (t["image_type"], report.image_type),
        (t["body_part"], report.body_part),
        (t["diagnosis"], report.diagnosis),
        (t["confidence_score"], f"{report.confidence_score}%"),
        (t["risk_level"], f"{report.risk_level} Risk"),
    ]

    detail_rows = "".join(
        f'<tr><td class="label">{escape(label)}:</td><td>{escape(value)}</td></tr>' for label, value in details
    )
    findings_html = "".join(f"<li>{escape(item)}</li>" for item in report.findings)
    recommendations_html = "".join(f"<li>{escape(item)}</li>" for item in report.recommendations)
    html = f"""<!DOCTYPE html>
<html lang="{escape(language)}">
<head><meta charset="UTF-8"><title>{escape(subject)}</title></head>
<body>
  <h1>MediScan AI</h1>
  <p>{escape(t["greeting"])}</p>
  <p>{escape(t["report_ready"])}</p>
  <h2>{escape(t["report_details"])}</h2>
  <table>{detail_rows}</table>
  <h2>{escape(t["key_findings"])}</h2>
  <ul>{findings_html}</ul>
  <h2>{escape(t["recommendations"])}</h2>
  <ul>{recommendations_html}</ul>
  <div class="disclaimer"><strong>{escape(t["disclaimer"])}</strong><p>{escape(t["disclaimer_text"])}</p></div>
  <p><a href="{escape(report_url)}">{escape(t["view_online"])}</a></p>
  <p>{escape(t["footer"])}<br>Generated on {generated_on}</p>
</body>
</html>
"""

    lines = [
        t["greeting"],
        "",
        t["report_ready"],
        "",
        f"{t['report_details']}:",
        *[f"- {label}: {value}" for label, value in details],
        "",
        f"{t['key_findings']}:",
        *[f"• {item}" for item in report.findings],
        "",
        f"{t['recommendations']}:",
        *[f"• {item}" for item in report.recommendations],
        "",
        f"{t['disclaimer']}:",
        t["disclaimer_text"],
        "",
        f"{t['view_online']}: {report_url}",
        "",
        t["footer"],
        f"Generated on {generated_on}",
    ]
    return EmailTemplate(subject=subject, html=html, text="\n".join(lines))


def send_email(to_address: str, template: EmailTemplate) -> bool:
    try:
        logger.info("Email would be sent to %s: %s (%d bytes html)", to_address, template.subject, len(template.html))
        time.sleep(settings.email_delay_seconds)
    except Exception:
        logger.exception("Email sending failed for %s", to_address)
        return False
    return True
