"""
Asynchronous task helpers for long-running background jobs (translation).
"""

from __future__ import annotations

import base64
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lingoshield.config import PipelineConfig
from lingoshield.logger import get_logger
from lingoshield.subtitles.parser import parse_subtitle_file
from lingoshield.translation.controller import TranslationController
from lingoshield.translation.manager import TranslationDocument, TranslationManager
from lingoshield.translation.progress import TranslationProgress
from lingoshield.translation.workbook import OVERWRITE_FILL_EMPTY, read_workbook

logger = get_logger(__name__)

KIND_DOCUMENTS = "documents"
KIND_SUBTITLES = "subtitles"
KIND_WORKBOOK = "workbook"
JOB_KINDS = (KIND_DOCUMENTS, KIND_SUBTITLES, KIND_WORKBOOK)

FINISHED_STATES = ("completed", "failed", "cancelled")


@dataclass
class JobState:
    """In-memory representation of an asynchronous job."""

    job_id: str
    kind: str = KIND_DOCUMENTS  # documents|subtitles|workbook
    languages: List[str] = field(default_factory=list)
    documents: List[Dict[str, Any]] = field(default_factory=list)  # name, content, content_type
    options: Dict[str, Any] = field(default_factory=dict)  # workbook: overwrite_mode
    ai_provider: Optional[str] = None
    cancel_requested: bool = False
    state: str = "pending"  # pending|running|paused|completed|failed|cancelled
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    progress: Dict[str, Any] = field(default_factory=dict)
    progress_history: List[Dict[str, Any]] = field(default_factory=list)  # History of all progress updates
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    failure_count: int = 0
    last_update: float = field(default_factory=time.time)
    controller: TranslationController = field(default_factory=TranslationController, repr=False)

    def request_cancel(self):
        """Mark this job as requested for cancellation."""
        self.cancel_requested = True
        self.controller.cancel()
        self.last_update = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "kind": self.kind,
            "languages": list(self.languages),
            "documents": [document.get("name") for document in self.documents],
            "ai_provider": self.ai_provider,
            "cancel_requested": self.cancel_requested,
            "paused": self.controller.paused,
            "state": self.state,
            "created_at": float(self.created_at),
            "started_at": float(self.started_at) if self.started_at is not None else None,
            "finished_at": float(self.finished_at) if self.finished_at is not None else None,
            "progress": self.progress,
            "progress_history": list(self.progress_history),
            "result": self.result,
            "error": self.error,
            "failure_count": self.failure_count,
            "last_update": float(self.last_update),
        }


_jobs: Dict[str, JobState] = {}
_jobs_lock = threading.Lock()
_JOB_RETENTION_SECONDS = 600  # Retain job info for 10 minutes after completion


def create_translation_job(
    pipeline_config: PipelineConfig,
    provider,
    documents: List[Dict[str, Any]],
    languages: List[str],
    kind: str = KIND_DOCUMENTS,
    ai_provider: Optional[str] = None,
    run_async: bool = True,
    options: Optional[Dict[str, Any]] = None,
) -> JobState:
    """
    Create and launch an asynchronous translation job.

    Args:
        pipeline_config: Configuration snapshot for the job
        provider: Translation provider instance
        documents: Dicts with name, content and optional content_type
            (for subtitles the name must carry the .srt/.vtt extension, for
            workbooks the content is the base64 .xlsx file)
        languages: Target language codes
        kind: "documents", "subtitles" or "workbook"
        ai_provider: Provider name, for display
        run_async: Run in a daemon thread; False runs inline (used by tests)
        options: Kind-specific options, e.g. {"overwrite_mode": "overwrite"}

    Returns:
        JobState for the new job (already registered and running in background).
    """
    job_id = uuid.uuid4().hex
    job_state = JobState(
        job_id=job_id,
        kind=kind,
        languages=list(languages),
        documents=list(documents),
        ai_provider=ai_provider,
        options=dict(options or {}),
    )

    with _jobs_lock:
        _cleanup_jobs_locked()
        _jobs[job_id] = job_state

    logger.info(
        "Translation job %s created (kind=%s, documents=%d, languages=%s)",
        job_id,
        kind,
        len(documents),
        job_state.languages,
    )
    if not run_async:
        _run_translation_job(job_state, pipeline_config, provider)
        return job_state

    thread = threading.Thread(
        target=_run_translation_job,
        args=(job_state, pipeline_config, provider),
        name=f"translation-job-{job_id}",
        daemon=True,
    )
    thread.start()
    return job_state


def get_job(job_id: str) -> Optional[JobState]:
    """Fetch a job by ID (if still retained)."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job and job.finished_at and (time.time() - job.finished_at) > _JOB_RETENTION_SECONDS:
            # Expired; remove
            _jobs.pop(job_id, None)
            return None
        return job


def cancel_job(job_id: str) -> bool:
    """
    Request cancellation of a running job.

    Returns:
        True if job was found and cancellation requested, False otherwise.
    """
    with _jobs_lock:
        job = _jobs.get(job_id)
        if not job or job.state in FINISHED_STATES:
            return False
        job.request_cancel()
        logger.info("Cancellation requested for job %s", job_id)
        return True


def pause_job(job_id: str) -> bool:
    """Pause a running job before its next unit of work. False if not pausable."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if not job or job.state in FINISHED_STATES:
            return False
        job.controller.pause()
        job.state = "paused"
        job.last_update = time.time()
        logger.info("Job %s paused", job_id)
        return True


def resume_job(job_id: str) -> bool:
    """Resume a paused job. False if the job is unknown or not paused."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if not job or job.state != "paused":
            return False
        job.controller.resume()
        job.state = "running"
        job.last_update = time.time()
        logger.info("Job %s resumed", job_id)
        return True


def serialize_job(job: JobState) -> Dict[str, Any]:
    """Convert JobState into JSON-safe dict."""
    with _jobs_lock:
        return job.to_dict()


def _run_translation_job(job: JobState, pipeline_config: PipelineConfig, provider):
    """Worker function executed in a background thread."""
    with _jobs_lock:
        if job.state == "pending":
            job.state = "running"
        job.started_at = time.time()
        job.last_update = job.started_at
    try:
        manager = TranslationManager(pipeline_config, provider, controller=job.controller)

        def on_progress(progress: TranslationProgress):
            with _jobs_lock:
                serialized = progress.to_dict()
                job.progress = serialized  # Latest state
                job.progress_history.append(serialized)  # Save to history
                job.failure_count = progress.failure_count
                job.last_update = time.time()
                # Check for cancellation request
                if job.cancel_requested:
                    return True  # Signal to stop
            return False

        def check_cancel():
            """Check if job cancellation was requested."""
            with _jobs_lock:
                return job.cancel_requested

        if job.kind == KIND_SUBTITLES:
            files = [parse_subtitle_file(document["content"], document["name"]) for document in job.documents]
            result = manager.translate_subtitles(
                files,
                job.languages,
                progress_callback=on_progress,
                cancel_check=check_cancel,
            )
        elif job.kind == KIND_WORKBOOK:
            workbooks = [
                read_workbook(base64.b64decode(document["content"]), document["name"])
                for document in job.documents
            ]
            result = manager.translate_workbooks(
                workbooks,
                job.languages,
                progress_callback=on_progress,
                cancel_check=check_cancel,
                overwrite_mode=job.options.get("overwrite_mode", OVERWRITE_FILL_EMPTY),
            )
            # Job results are served as JSON
            result["workbooks"] = {
                name: base64.b64encode(content).decode("ascii") for name, content in result["workbooks"].items()
            }
        else:
            documents = [
                TranslationDocument(
                    name=document["name"],
                    content=document["content"],
                    content_type=document.get("content_type"),
                )
                for document in job.documents
            ]
            result = manager.translate_documents(
                documents,
                job.languages,
                progress_callback=on_progress,
                cancel_check=check_cancel,
            )

        with _jobs_lock:
            job.result = result
            job.finished_at = time.time()
            job.last_update = job.finished_at
            if job.cancel_requested or result.get("cancelled"):
                # Languages finished before the cancellation stay in the result
                job.state = "cancelled"
            else:
                job.state = "completed" if result.get("success", True) else "failed"
        logger.info(
            "Translation job %s finished (state=%s, translated=%s, failed=%s)",
            job.job_id,
            job.state,
            result.get("total_translated"),
            result.get("total_failed"),
        )
    except Exception as exc:
        error_type = type(exc).__name__
        error_message = str(exc)
        with _jobs_lock:
            job.state = "failed"
            job.error = f"{error_type}: {error_message}"
            job.finished_at = time.time()
            job.last_update = job.finished_at
        logger.exception(
            "Translation job %s failed: %s: %s",
            job.job_id,
            error_type,
            error_message,
        )


def _cleanup_jobs_locked():
    """Remove completed jobs that exceeded retention period (call with lock held)."""
    now = time.time()
    expired = [
        job_id
        for job_id, job in _jobs.items()
        if job.finished_at and (now - job.finished_at) > _JOB_RETENTION_SECONDS
    ]
    for job_id in expired:
        _jobs.pop(job_id, None)
