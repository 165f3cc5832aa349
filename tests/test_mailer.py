from datetime import datetime

from mediscan.config import settings
from mediscan.services.mailer import EmailTemplate, render_report_email, report_email_from_results, send_email

CREATED = datetime(2026, 3, 4, 10, 30)


def test_render_uses_analysis_results():
    view = report_email_from_results(
        report_id=7,
        patient_name="Pat Doe",
        image_type="CT",
        body_part="Head",
        confidence_score=88,
        analysis_results={
            "findings": [{"description": "No bleed <seen>"}],
            "overallAssessment": "Normal study",
            "recommendations": ["Rest"],
            "urgency": "Low",
        },
        created_at=CREATED,
    )
    template = render_report_email(view, language="en", site_url="https://mediscan.test/")

    assert template.subject == "Medical Report - CT Analysis"
    assert "88%" in template.text
    assert "low Risk" in template.text
    assert "• No bleed <seen>" in template.text
    assert "No bleed &lt;seen&gt;" in template.html
    assert "https://mediscan.test/reports/7" in template.html
    assert "Generated on 2026-03-04" in template.text


def test_missing_results_render_pending_and_unknown_language_falls_back():
    view = report_email_from_results(7, "Pat Doe", None, None, None, None, CREATED)
    template = render_report_email(view, language="xx")
    assert view.diagnosis == "Analysis pending"
    assert view.risk_level == "unknown"
    assert "Dear Patient," in template.text


def test_send_email_simulates_success(monkeypatch):
    monkeypatch.setattr(settings, "email_delay_seconds", 0)
    template = EmailTemplate(subject="s", html="<p>h</p>", text="t")
    assert send_email("someone@example.com", template) is True
