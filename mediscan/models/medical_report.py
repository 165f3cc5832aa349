from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mediscan.database import Base
from mediscan.timeutil import utcnow

STATUS_UPLOADED = "uploaded"
STATUS_ENHANCING = "enhancing"
STATUS_COMPLETED = "completed"
STATUS_ANALYZING = "analyzing"
STATUS_ANALYZED = "analyzed"
STATUS_FAILED = "failed"


class MedicalReport(Base):
    __tablename__ = "medical_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    original_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    enhanced_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    body_part: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_UPLOADED, index=True)
    enhancement_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    analysis_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    analysis_results: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    confidence_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    analyzed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="medical_reports")
    email_logs = relationship("EmailLog", back_populates="report", cascade="all, delete-orphan")


class EmailLog(Base):
    __tablename__ = "email_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    report_id: Mapped[int] = mapped_column(Integer, ForeignKey("medical_reports.id", ondelete="CASCADE"), index=True)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="sent")
    sent_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    report = relationship("MedicalReport", back_populates="email_logs")
