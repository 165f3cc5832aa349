import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from mediscan.config import settings
from mediscan.database import get_db
from mediscan.errors import InternalError, NotFoundError
from mediscan.models.medical_report import (
    STATUS_ANALYZED,
    STATUS_ANALYZING,
    STATUS_COMPLETED,
    STATUS_ENHANCING,
    STATUS_FAILED,
    STATUS_UPLOADED,
    EmailLog,
    MedicalReport,
)
from mediscan.routers.deps import get_current_user
from mediscan.schemas.analysis import normalize_confidence
from mediscan.schemas.report import (
    ReportCreateRequest,
    ReportEmailRequest,
    ReportResponse,
    ReportStatusResponse,
)
from mediscan.services import analysis
from mediscan.services.auth_store import PublicUser
from mediscan.services.enhancement import build_enhancement_results, enhanced_image_url, run_enhancement_steps
from mediscan.services.mailer import render_report_email, report_email_from_results, send_email
from mediscan.timeutil import utcnow

router = APIRouter(prefix="/api/reports", tags=["reports"])
logger = logging.getLogger(__name__)


def _get_owned_report(db: Session, report_id: int, user_id: int) -> MedicalReport:
    report = (
        db.query(MedicalReport)
        .filter(MedicalReport.id == report_id, MedicalReport.user_id == user_id)
        .first()
    )
    if not report:
        raise NotFoundError("Report not found")
    return report


def _mark_failed(db: Session, report: MedicalReport) -> None:
    db.rollback()
    report.status = STATUS_FAILED
    db.add(report)
    db.commit()


@router.post("")
def create_report(
    payload: ReportCreateRequest,
    db: Session = Depends(get_db),
    current_user: PublicUser = Depends(get_current_user),
):
    report = MedicalReport(
        user_id=current_user.id,
        original_image_url=payload.original_image_url,
        image_type=payload.image_type,
        body_part=payload.body_part,
        status=STATUS_UPLOADED,
        created_at=utcnow(),
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return {
        "statusCode": 200,
        "message": "Report created",
        "data": {"report_id": report.id, "status": report.status},
    }


@router.get("")
def list_reports(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: PublicUser = Depends(get_current_user),
):
    offset = (page - 1) * limit
    total = (
        db.query(func.count(MedicalReport.id)).filter(MedicalReport.user_id == current_user.id).scalar() or 0
    )
    rows = (
        db.query(MedicalReport)
        .filter(MedicalReport.user_id == current_user.id)
        .order_by(MedicalReport.created_at.desc(), MedicalReport.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "reports": [ReportResponse.model_validate(row).model_dump(mode="json") for row in rows],
            "total": total,
            "page": page,
            "limit": limit,
        },
    }


@router.get("/{report_id}")
def get_report(report_id: int, db: Session = Depends(get_db), current_user: PublicUser = Depends(get_current_user)):
    report = _get_owned_report(db, report_id, current_user.id)
    return {
        "statusCode": 200,
        "message": "Success",
        "data": ReportResponse.model_validate(report).model_dump(mode="json"),
    }


@router.get("/{report_id}/status")
def report_status(report_id: int, db: Session = Depends(get_db), current_user: PublicUser = Depends(get_current_user)):
    report = _get_owned_report(db, report_id, current_user.id)
    return {
        "statusCode": 200,
        "message": "Success",
        "data": ReportStatusResponse.model_validate(report).model_dump(mode="json"),
    }


@router.post("/{report_id}/enhance")
def enhance_report(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: PublicUser = Depends(get_current_user),
):
    report = _get_owned_report(db, report_id, current_user.id)
    report.status = STATUS_ENHANCING
    report.enhancement_progress = 0
    db.commit()

    try:
        for _, progress in run_enhancement_steps(settings.enhancement_step_delay_seconds):
            report.enhancement_progress = progress
            db.commit()

        results = build_enhancement_results(report.image_type, report.body_part)
        report.status = STATUS_COMPLETED
        report.enhanced_image_url = enhanced_image_url(report.id)
        report.analysis_results = results
        report.confidence_score = normalize_confidence(results["confidence"])
        db.commit()
    except Exception as exc:
        logger.exception("Enhancement failed for report %s", report_id)
        _mark_failed(db, report)
        raise InternalError("Enhancement failed") from exc

    db.refresh(report)
    return {
        "statusCode": 200,
        "message": "Enhancement completed",
        "data": {
            "report_id": report.id,
            "status": report.status,
            "enhanced_image_url": report.enhanced_image_url,
            "analysis_results": report.analysis_results,
            "confidence_score": report.confidence_score,
        },
    }


@router.post("/{report_id}/analyze")
def analyze_report(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: PublicUser = Depends(get_current_user),
):
    report = _get_owned_report(db, report_id, current_user.id)
    report.status = STATUS_ANALYZING
    report.analysis_progress = 0
    db.commit()

    try:
        result = analysis.analyze_image(report.image_type, report.body_part)
        report.status = STATUS_ANALYZED
        report.analysis_progress = 100
        report.analysis_results = result.model_dump(by_alias=True)
        report.confidence_score = analysis.overall_confidence(result)
        report.analyzed_at = utcnow()
        db.commit()
    except Exception as exc:
        logger.exception("Analysis failed for report %s", report_id)
        _mark_failed(db, report)
        raise InternalError("Analysis failed") from exc

    db.refresh(report)
    return {
        "statusCode": 200,
        "message": "Medical analysis completed successfully",
        "data": {
            "report_id": report.id,
            "status": report.status,
            "analysis": report.analysis_results,
            "confidence_score": report.confidence_score,
        },
    }


@router.post("/{report_id}/email")
def email_report(
    report_id: int,
    payload: ReportEmailRequest,
    db: Session = Depends(get_db),
    current_user: PublicUser = Depends(get_current_user),
):
    report = _get_owned_report(db, report_id, current_user.id)
    email_view = report_email_from_results(
        report_id=report.id,
        patient_name=f"{current_user.first_name} {current_user.last_name}",
        image_type=report.image_type,
        body_part=report.body_part,
        confidence_score=report.confidence_score,
        analysis_results=report.analysis_results,
        created_at=report.created_at,
    )
    template = render_report_email(email_view, language=current_user.preferred_language)
    if not send_email(payload.email, template):
        raise InternalError("Failed to send email")

    db.add(EmailLog(user_id=current_user.id, report_id=report.id, recipient_email=payload.email, status="sent"))
    db.commit()
    return {"statusCode": 200, "message": "Report sent successfully", "data": None}
