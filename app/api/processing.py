"""
Image Processing API Routes
Accepts processing requests and reports job status for polling clients.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db, get_orchestrator
from app.core.exceptions import NotFoundError, ValidationError
from app.models.job import ImageProcessingJob
from app.schemas.conversation import MessageResponse
from app.schemas.job import JobResponse, ProcessImageRequest, ProcessImageResponse
from app.services.processing import ImageProcessingOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process-image", response_model=ProcessImageResponse, status_code=status.HTTP_201_CREATED)
async def process_image(
    request: ProcessImageRequest,
    db: Session = Depends(get_db),
    orchestrator: ImageProcessingOrchestrator = Depends(get_orchestrator),
    user_id: str = Depends(get_current_user_id),
):
    """
    Start processing an image.
    Returns the user message, the assistant placeholder and the job immediately;
    poll /processing-jobs/{aiMessage.id} for the outcome.
    """
    try:
        result = await orchestrator.submit(
            db,
            conversation_id=request.conversation_id,
            image_url=request.image_url,
            prompt=request.prompt,
            user_id=user_id,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    return ProcessImageResponse(
        user_message=MessageResponse.model_validate(result.user_message),
        ai_message=MessageResponse.model_validate(result.ai_message),
        processing_job=JobResponse.model_validate(result.job),
    )


@router.get("/processing-jobs/{message_id}", response_model=JobResponse)
async def get_processing_job(
    message_id: str,
    db: Session = Depends(get_db),
):
    """Get the job attached to an assistant message."""
    job = db.query(ImageProcessingJob).filter(ImageProcessingJob.message_id == message_id).first()

    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Processing job not found"
        )

    return job
