import time
from enum import Enum
from typing import Any, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, computed_field
from sqlalchemy import BigInteger, Column, String, Text

from psd_worker.internal.db import Base, JSONField, get_db


class RenderStatusEnum(str, Enum):
    """Enum for render job states"""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


FINISHED_STATUSES = (RenderStatusEnum.COMPLETED.value, RenderStatusEnum.FAILED.value)


class RenderJob(Base):
    """SQLAlchemy model for render job tracking"""

    __tablename__ = "render_jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    status = Column(String, nullable=False, default=RenderStatusEnum.PENDING.value)
    psd_url = Column(Text, nullable=False)
    modifications = Column(JSONField, nullable=True)
    output_format = Column(String, nullable=False, default="jpg")
    file_id = Column(String, nullable=True)
    url = Column(Text, nullable=True)
    download_url = Column(Text, nullable=True)
    missing_layers = Column(JSONField, nullable=True)
    error_message = Column(Text, nullable=True)
    started_at = Column(BigInteger, nullable=True)
    completed_at = Column(BigInteger, nullable=True)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)


class RenderJobModel(BaseModel):
    """Pydantic model for a render job"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    psd_url: str
    modifications: Optional[List[Any]] = None
    output_format: str = "jpg"
    file_id: Optional[str] = None
    url: Optional[str] = None
    download_url: Optional[str] = None
    missing_layers: Optional[List[str]] = None
    error_message: Optional[str] = None
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    created_at: int
    updated_at: int

    @computed_field
    @property
    def duration_seconds(self) -> Optional[int]:
        """Seconds spent rendering, counted up to now while still running."""
        if self.started_at and self.completed_at:
            return self.completed_at - self.started_at
        elif self.started_at:
            return int(time.time()) - self.started_at
        return None


class RenderJobTable:
    """Database operations for render jobs"""

    def create_job(
        self, psd_url: str, modifications: List[dict], output_format: str = "jpg"
    ) -> RenderJobModel:
        with get_db() as db:
            now = int(time.time())

            job = RenderJob(
                id=str(uuid4()),
                status=RenderStatusEnum.PENDING.value,
                psd_url=psd_url,
                modifications=modifications,
                output_format=output_format,
                created_at=now,
                updated_at=now,
            )

            db.add(job)
            db.commit()
            db.refresh(job)

            return RenderJobModel.model_validate(job)

    def update_job(
        self,
        job_id: str,
        status: Optional[str] = None,
        file_id: Optional[str] = None,
        url: Optional[str] = None,
        download_url: Optional[str] = None,
        missing_layers: Optional[List[str]] = None,
        error_message: Optional[str] = None,
    ) -> Optional[RenderJobModel]:
        with get_db() as db:
            job = db.query(RenderJob).filter(RenderJob.id == job_id).first()

            if not job:
                return None

            now = int(time.time())

            if status is not None:
                job.status = status

                if status == RenderStatusEnum.PROCESSING.value:
                    job.started_at = now
                elif status in FINISHED_STATUSES:
                    job.completed_at = now

            if file_id is not None:
                job.file_id = file_id
            if url is not None:
                job.url = url
            if download_url is not None:
                job.download_url = download_url
            if missing_layers is not None:
                job.missing_layers = missing_layers
            if error_message is not None:
                job.error_message = error_message

            job.updated_at = now

            db.commit()
            db.refresh(job)

            return RenderJobModel.model_validate(job)

    def get_job_by_id(self, job_id: str) -> Optional[RenderJobModel]:
        with get_db() as db:
            job = db.query(RenderJob).filter(RenderJob.id == job_id).first()

            if job:
                return RenderJobModel.model_validate(job)
            return None

    def get_job_history(self, limit: int = 10) -> list[RenderJobModel]:
        """Most recent jobs first."""
        with get_db() as db:
            jobs = (
                db.query(RenderJob)
                .order_by(RenderJob.created_at.desc(), RenderJob.id)
                .limit(limit)
                .all()
            )

            return [RenderJobModel.model_validate(j) for j in jobs]


RenderJobs = RenderJobTable()
