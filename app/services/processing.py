"""
Image Processing Orchestrator
Accepts "process this image with this prompt" requests, creates the placeholder
rows synchronously and finishes the job in the background.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal, commit_or_raise
from app.core.exceptions import NotFoundError, ValidationError
from app.models.conversation import Conversation, Message
from app.models.job import ImageProcessingJob
from app.models.model_config import ModelConfiguration
from app.schemas.conversation import MessageRole, MessageStatus
from app.schemas.job import JobStatus
from app.services.model_config import EffectiveModelConfig, resolve_effective_config
from app.services.openrouter import OpenRouterImageService, ProcessingResult
from app.workers.events import JobEvent, JobEventBus
from app.workers.executor import BackgroundExecutor

logger = logging.getLogger(__name__)

PLACEHOLDER_CONTENT = "Processing your image..."
INTERRUPTED_ERROR = "Processing was interrupted before it could finish"


@dataclass
class SubmitResult:
    """The three rows created for a request, returned before the provider is called."""
    user_message: Message
    ai_message: Message
    job: ImageProcessingJob


def format_success_content(enhancements: List[str]) -> str:
    bullets = "\n".join(f"• {item}" for item in enhancements)
    return f"I've successfully enhanced your image! Here are the improvements I applied:\n\n{bullets}"


def format_error_content(error_text: str) -> str:
    return f"Sorry, I encountered an error while processing your image: {error_text}"


def mark_completed(job: ImageProcessingJob, message: Optional[Message], result: ProcessingResult):
    """Apply a successful outcome to the job and its assistant message."""
    job.status = JobStatus.COMPLETED.value
    job.processed_image_url = result.processed_image_url
    job.processing_time = result.processing_time
    job.enhancements_applied = list(result.enhancements_applied)
    job.error_message = None
    job.completed_at = datetime.utcnow()

    if message is not None:
        message.processing_status = MessageStatus.COMPLETED.value
        message.content = format_success_content(result.enhancements_applied)
        message.image_url = result.processed_image_url


def mark_error(job: ImageProcessingJob, message: Optional[Message], error_text: str):
    """Apply a failure to the job and its assistant message."""
    job.status = JobStatus.ERROR.value
    job.error_message = error_text
    job.completed_at = datetime.utcnow()

    if message is not None:
        message.processing_status = MessageStatus.ERROR.value
        message.content = format_error_content(error_text)


class ImageProcessingOrchestrator:
    """
    Drives one image edit from request to terminal state.

    submit() writes the user message, the assistant placeholder and the job in
    one commit and hands complete() to the executor. complete() calls the
    provider once and writes the job and message outcome in one commit, so the
    two never disagree about terminal status.
    """

    def __init__(
        self,
        adapter: OpenRouterImageService,
        executor: BackgroundExecutor,
        events: Optional[JobEventBus] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.adapter = adapter
        self.executor = executor
        self.events = events or JobEventBus()
        self.session_factory = session_factory

    async def submit(
        self,
        db: Session,
        conversation_id: Optional[str],
        image_url: Optional[str],
        prompt: Optional[str],
        user_id: str,
    ) -> SubmitResult:
        """
        Create the placeholder rows and schedule the provider call.

        Raises:
            ValidationError: conversation_id, image_url or prompt is missing
            NotFoundError: the conversation does not exist
        """
        missing = [
            name for name, value in (
                ("conversationId", conversation_id),
                ("imageUrl", image_url),
                ("prompt", prompt),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
        if not conversation:
            raise NotFoundError(f"Conversation not found: {conversation_id}")

        config = resolve_effective_config(db, user_id)

        user_message = Message(
            conversation_id=conversation_id,
            role=MessageRole.USER.value,
            content=prompt,
            image_url=image_url,
            processing_status=MessageStatus.COMPLETED.value,
        )
        db.add(user_message)
        db.flush()

        ai_message = Message(
            conversation_id=conversation_id,
            role=MessageRole.ASSISTANT.value,
            content=PLACEHOLDER_CONTENT,
            processing_status=MessageStatus.PROCESSING.value,
        )
        db.add(ai_message)
        db.flush()

        job = ImageProcessingJob(
            message_id=ai_message.id,
            original_image_url=image_url,
            prompt=prompt,
            model=config.model,
            status=JobStatus.PROCESSING.value,
        )
        db.add(job)
        commit_or_raise(db, "create processing job")

        for row in (user_message, ai_message, job):
            db.refresh(row)

        logger.info(f"Created job {job.id} for message {ai_message.id} (model: {config.model})")

        self.executor.submit(
            self.complete(job.id, image_url, prompt, config),
            name=f"process-{job.id}",
        )
        return SubmitResult(user_message=user_message, ai_message=ai_message, job=job)

    async def complete(self, job_id: str, image_url: str, prompt: str, config: EffectiveModelConfig):
        """
        Background continuation: call the provider once and record the outcome.
        Provider and configuration failures become an error state, never an exception.
        """
        logger.info(f"[START] Processing job {job_id}")
        result: Optional[ProcessingResult] = None
        error_text: Optional[str] = None

        try:
            result = await asyncio.wait_for(
                self.adapter.process(
                    image_url,
                    prompt,
                    config.model,
                    api_key=config.api_key,
                    timeout=config.timeout,
                    max_resolution=config.max_resolution,
                ),
                timeout=config.timeout,
            )
        except asyncio.TimeoutError:
            error_text = f"Processing timed out after {config.timeout} seconds"
        except Exception as e:
            error_text = str(e) or e.__class__.__name__

        db = self.session_factory()
        try:
            job = (
                db.query(ImageProcessingJob)
                .filter(ImageProcessingJob.id == job_id)
                .with_for_update()
                .first()
            )
            if not job:
                logger.error(f"Job {job_id} disappeared before it could be updated")
                return
            if JobStatus(job.status).is_terminal:
                # Another process (e.g. a startup repair pass) already settled this job
                logger.warning(f"Job {job_id} is already {job.status}, discarding late outcome")
                db.rollback()
                return
            message = db.query(Message).filter(Message.id == job.message_id).first()

            if error_text is None:
                mark_completed(job, message, result)
            else:
                mark_error(job, message, error_text)

            commit_or_raise(db, f"record outcome of job {job_id}")
            event = JobEvent(job_id=job.id, message_id=job.message_id, status=job.status, error=error_text)
        finally:
            db.close()

        if error_text is None:
            logger.info(f"[COMPLETE] Job {job_id} | Duration: {result.processing_time}s")
        else:
            logger.warning(f"[ERROR] Job {job_id} | {error_text}")

        self.events.publish(event)


def longest_timeout(db: Session) -> int:
    """Largest provider deadline any job can currently run under."""
    configured = db.query(func.max(ModelConfiguration.timeout)).scalar()
    return max(configured or 0, settings.DEFAULT_TIMEOUT)


def reconcile_interrupted_jobs(db: Session, max_age: Optional[float] = None) -> int:
    """
    Move jobs left in processing by a dead process to error.

    Background work does not survive a restart. Only jobs older than max_age
    seconds (default: the longest configured timeout plus a minute) are touched,
    since a younger job may still be running in another worker.
    """
    if max_age is None:
        max_age = longest_timeout(db) + 60
    cutoff = datetime.utcnow() - timedelta(seconds=max_age)

    stuck = (
        db.query(ImageProcessingJob)
        .filter(
            ImageProcessingJob.status.in_([JobStatus.PENDING.value, JobStatus.PROCESSING.value]),
            ImageProcessingJob.created_at < cutoff,
        )
        .with_for_update()
        .all()
    )

    for job in stuck:
        message = db.query(Message).filter(Message.id == job.message_id).first()
        mark_error(job, message, INTERRUPTED_ERROR)

    if stuck:
        commit_or_raise(db, "reconcile interrupted jobs")
        logger.warning(f"Marked {len(stuck)} interrupted job(s) as error")
    return len(stuck)
