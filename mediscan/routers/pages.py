"""JSON view-models for the server-rendered pages.

Rendering is left to the client; these endpoints only assemble the data each
page needs and sit behind the same authorization gate as the API.
"""

from collections import Counter

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mediscan.database import get_db
from mediscan.models.medical_report import MedicalReport
from mediscan.routers.deps import get_current_user
from mediscan.schemas.report import ReportResponse
from mediscan.schemas.user import UserResponse
from mediscan.services.auth_store import PublicUser

router = APIRouter(tags=["pages"])

RECENT_REPORTS_LIMIT = 5


@router.get("/")
def home():
    return {"statusCode": 200, "message": "Success", "data": {"page": "home", "service": "mediscan"}}


@router.get("/login")
def login_page():
    return {"statusCode": 200, "message": "Success", "data": {"page": "login", "action": "/api/auth/login"}}


@router.get("/register")
def register_page():
    return {"statusCode": 200, "message": "Success", "data": {"page": "register", "action": "/api/auth/register"}}


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), current_user: PublicUser = Depends(get_current_user)):
    reports = (
        db.query(MedicalReport)
        .filter(MedicalReport.user_id == current_user.id)
        .order_by(MedicalReport.created_at.desc(), MedicalReport.id.desc())
        .all()
    )
    scores = [r.confidence_score for r in reports if r.confidence_score is not None]
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "page": "dashboard",
            "user": UserResponse.model_validate(current_user).model_dump(mode="json"),
            "total_reports": len(reports),
            "status_counts": dict(Counter(r.status for r in reports)),
            "average_confidence": round(sum(scores) / len(scores), 1) if scores else None,
            "recent_reports": [
                ReportResponse.model_validate(r).model_dump(mode="json") for r in reports[:RECENT_REPORTS_LIMIT]
            ],
        },
    }


@router.get("/reports")
def reports_page(db: Session = Depends(get_db), current_user: PublicUser = Depends(get_current_user)):
    reports = (
        db.query(MedicalReport)
        .filter(MedicalReport.user_id == current_user.id)
        .order_by(MedicalReport.created_at.desc(), MedicalReport.id.desc())
        .all()
    )
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "page": "reports",
            "reports": [ReportResponse.model_validate(r).model_dump(mode="json") for r in reports],
        },
    }
