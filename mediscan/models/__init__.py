from mediscan.models.medical_report import EmailLog, MedicalReport
from mediscan.models.user import User, UserSession

__all__ = [
    "User",
    "UserSession",
    "MedicalReport",
    "EmailLog",
]
