"""In-memory job store for background conversions, with TTL cleanup.

WHY: The HTTP API accepts an upload, answers with a job ID right away and
converts in the background. Clients poll the job, download the result, or
cancel it. An in-memory store is enough for a single-process service with
no persistence requirements.

HOW: Three components work together:
  JobStatus  : enum of valid job states
  Job        : dataclass with the job's mapping, status, warnings, working
               directory and cancel event
  JobStore   : thread-safe dict-based store with create/update/get/list/
               cancel, plus TTL cleanup

RULES:
- All store mutations are protected by threading.Lock
- Each job gets a dedicated temp directory for the upload and the result
- Cancelling sets the job's cancel_event (the engine stops at the next
  checkpoint) and removes the job
- TTL-based expiry removes finished jobs and their temp directories
- Job IDs are UUID4 hex strings generated at creation time
- Default TTL is 1 hour (3600 seconds)
"""

from __future__ import annotations

import enum
import logging
import shutil
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from filemapper.core.errors import TransformationWarning
from filemapper.core.models import MappingDefinition

logger = logging.getLogger(__name__)

# Default time-to-live for finished jobs (seconds)
DEFAULT_TTL_SECONDS = 3600


class JobStatus(str, enum.Enum):
    """Valid states for a conversion job.

    RULES:
    - pending: job created, not yet started
    - converting: engine running
    - completed: converted file ready for download
    - failed: parse or configuration error, see ``error``
    - cancelled: stopped through its cancel event
    """

    PENDING = "pending"
    CONVERTING = "converting"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class Job:
    """Metadata and state for a single conversion job.

    RULES:
    - id: UUID4 hex string, immutable after creation
    - filename: sanitized name of the uploaded source file
    - work_dir: temp directory holding the upload and the result
    - output_file: result filename inside work_dir once completed
    - records: number of records written
    - warnings: per-field warnings reported by the engine
    """

    id: str
    status: JobStatus
    filename: str
    mapping: MappingDefinition
    work_dir: Path
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None
    records: int = 0
    output_file: Optional[str] = None
    media_type: Optional[str] = None
    warnings: List[TransformationWarning] = field(default_factory=list)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def source_path(self) -> Path:
        return self.work_dir / "source" / self.filename


class JobStore:
    """Thread-safe in-memory store for conversion jobs.

    RULES:
    - All public methods that mutate state acquire self._lock
    - get_job() returns None for missing job IDs (no exceptions)
    - create_job() raises ValueError once max_jobs is reached
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_jobs: int = 100,
    ) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_jobs = max_jobs

    def create_job(self, filename: str, mapping: MappingDefinition) -> Job:
        """Create a PENDING job with its own temp directory."""
        with self._lock:
            if len(self._jobs) >= self.max_jobs:
                raise ValueError(
                    "Maximum number of concurrent jobs ({}) reached".format(self.max_jobs)
                )

            job_id = uuid.uuid4().hex
            now = time.time()
            work_dir = Path(tempfile.mkdtemp(prefix="filemapper_job_"))
            (work_dir / "source").mkdir()

            job = Job(
                id=job_id,
                status=JobStatus.PENDING,
                filename=filename,
                mapping=mapping,
                work_dir=work_dir,
                created_at=now,
                updated_at=now,
            )
            self._jobs[job_id] = job

        logger.info("Created job %s for file %s (mapping '%s')", job_id, filename, mapping.name)
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        """All jobs, oldest first."""
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        error: Optional[str] = None,
        records: Optional[int] = None,
        output_file: Optional[str] = None,
        media_type: Optional[str] = None,
    ) -> Optional[Job]:
        """Apply the non-None updates; returns None if the job is gone."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None

            now = time.time()
            if status is not None:
                job.status = status
            if error is not None:
                job.error = error
            if records is not None:
                job.records = records
            if output_file is not None:
                job.output_file = output_file
            if media_type is not None:
                job.media_type = media_type
            job.updated_at = now

            if job.status in TERMINAL_STATUSES:
                job.completed_at = now
            return job

    def add_warning(self, job_id: str, warning: TransformationWarning) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                job.warnings.append(warning)

    def cancel_job(self, job_id: str) -> bool:
        """Signal a running conversion to stop, then delete the job.

        Returns:
            True if the job existed.
        """
        with self._lock:
            job = self._jobs.pop(job_id, None)

        if job is None:
            return False

        job.cancel_event.set()
        self.remove_work_dir(job.work_dir)
        logger.info("Cancelled and removed job %s", job_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove finished jobs older than the TTL; returns the count removed."""
        now = time.time()
        expired_jobs: List[Job] = []

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if job.status not in TERMINAL_STATUSES or job.completed_at is None:
                    continue
                if now - job.completed_at > self._ttl_seconds:
                    expired_jobs.append(self._jobs.pop(job_id))

        for job in expired_jobs:
            self.remove_work_dir(job.work_dir)
            logger.info("Expired job %s (finished %.0fs ago)", job.id, now - job.completed_at)
        return len(expired_jobs)

    @staticmethod
    def remove_work_dir(work_dir: Path) -> None:
        if work_dir.exists():
            try:
                shutil.rmtree(work_dir)
            except OSError:
                logger.warning("Failed to clean up temp dir: %s", work_dir)
