"""
Interview records - persistence

One JSON document per record under the data directory. Writes go to a
temporary file first and are moved into place, so a crash never leaves a
half-written record. Every operation is scoped to an owner; another owner's
records behave as if they did not exist.
"""

import json
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from config import config
from pitchperfect.orchestrator.schema import (
    FeedbackReport,
    InterviewSetup,
    JobAnalysis,
    JobDetails,
    JobPostInput,
    TranscriptData,
    Turn,
)
from pitchperfect.utils.error_handlers import ErrorCategory, InterviewError

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class RecordNotFound(InterviewError):
    category = ErrorCategory.RESULT
    default_message = "Interview not found."


class InterviewRecord(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owner: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    job_details: JobDetails
    transcript: Optional[TranscriptData] = None
    report_data: Optional[FeedbackReport] = None
    overall_score: Optional[float] = Field(None, ge=0, le=10)

    duration_minutes: Optional[int] = None
    degraded: bool = False

    @field_validator("overall_score")
    @classmethod
    def one_decimal(cls, v: Optional[float]) -> Optional[float]:
        return round(v, 1) if v is not None else None

    @property
    def status(self) -> Literal["saved", "completed"]:
        return "completed" if self.transcript is not None else "saved"

    def to_public(self) -> dict:
        data = self.model_dump(mode="json", by_alias=True)
        data["status"] = self.status
        return data


class InterviewStore:
    """File-backed PersistenceGateway."""

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir or config.app.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Interview store ready. Directory: {self.data_dir}")

    # --- writes ---

    def create_saved_configuration(
        self,
        owner: str,
        raw_input: JobPostInput,
        analysis: JobAnalysis,
    ) -> InterviewRecord:
        """Record created right after analysis; no transcript or report yet."""
        record = InterviewRecord(
            owner=owner,
            job_details=JobDetails(raw_input=raw_input, analysis=analysis),
        )
        self._write(record)
        logger.info(f"Saved configuration {record.id}")
        return record

    def save_completed(
        self,
        owner: str,
        job_details: JobDetails,
        messages: list[Turn],
        setup: Optional[InterviewSetup] = None,
        report: Optional[FeedbackReport] = None,
        duration_minutes: Optional[int] = None,
        record_id: Optional[str] = None,
        degraded: bool = False,
    ) -> InterviewRecord:
        """Update the owner's record when it exists, insert a new one otherwise."""
        record = None
        if record_id:
            try:
                record = self.get(owner, record_id)
            except RecordNotFound:
                logger.warning(f"Record {record_id} not found for owner, inserting a new one")

        values = {
            "job_details": job_details,
            "transcript": TranscriptData(messages=list(messages), config=setup),
            "report_data": report,
            "overall_score": report.overall_score if report else None,
            "duration_minutes": duration_minutes,
            "degraded": degraded,
            "updated_at": datetime.now(),
        }
        if record is None:
            record = InterviewRecord(owner=owner, **values)
        else:
            record = InterviewRecord(id=record.id, owner=owner, created_at=record.created_at, **values)

        self._write(record)
        logger.info(f"Completed interview stored as {record.id} (degraded={degraded})")
        return record

    def delete(self, owner: str, record_id: str):
        self.get(owner, record_id)
        self._path(record_id).unlink()
        logger.info(f"Interview {record_id} deleted")

    # --- reads ---

    def get(self, owner: str, record_id: str) -> InterviewRecord:
        path = self._path(record_id)
        if not path.exists():
            raise RecordNotFound(f"No interview {record_id}")
        record = self._read(path)
        if record.owner != owner:
            raise RecordNotFound(f"No interview {record_id}")
        return record

    def list(
        self,
        owner: str,
        status: Optional[Literal["saved", "completed"]] = None,
    ) -> list[InterviewRecord]:
        """Owner's records, newest first."""
        records = []
        for path in self.data_dir.glob("*.json"):
            try:
                record = self._read(path)
            except (OSError, ValueError, ValidationError) as e:
                logger.warning(f"Unreadable record file: {path}, error: {e}")
                continue
            if record.owner != owner:
                continue
            if status and record.status != status:
                continue
            records.append(record)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def stats(self, owner: str) -> dict:
        records = self.list(owner)
        scores = [r.overall_score for r in records if r.overall_score is not None]
        return {
            "total": len(records),
            "saved": sum(1 for r in records if r.status == "saved"),
            "completed": sum(1 for r in records if r.status == "completed"),
            "average_score": round(sum(scores) / len(scores), 1) if scores else None,
        }

    # --- files ---

    def _path(self, record_id: str) -> Path:
        if not _SAFE_ID.match(record_id or ""):
            raise RecordNotFound(f"Invalid interview id: {record_id!r}")
        return self.data_dir / f"{record_id}.json"

    def _read(self, path: Path) -> InterviewRecord:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return InterviewRecord.model_validate(data)

    def _write(self, record: InterviewRecord):
        final_file = self._path(record.id)
        temp_file = final_file.with_suffix(".tmp")
        with open(temp_file, 'w', encoding='utf-8') as f:
            f.write(record.model_dump_json(indent=2, by_alias=True))
        temp_file.replace(final_file)
        logger.debug(f"Record written: {record.id}")
