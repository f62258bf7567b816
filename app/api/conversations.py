"""
Conversations API Routes
Conversation threads and their message lists.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db
from app.models.conversation import Conversation, Message
from app.models.job import ImageProcessingJob
from app.schemas.conversation import (
    ConversationCreate, ConversationResponse, LatestImageResponse, MessageResponse
)

router = APIRouter()


def _get_conversation_or_404(db: Session, conversation_id: str) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found"
        )
    return conversation


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """List the caller's conversations, newest first."""
    return (
        db.query(Conversation)
        .filter(Conversation.user_id == user_id)
        .order_by(Conversation.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: ConversationCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Create a new conversation."""
    conversation = Conversation(title=request.title.strip(), user_id=user_id)
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: str,
    db: Session = Depends(get_db),
):
    """Messages of a conversation in insertion order."""
    _get_conversation_or_404(db, conversation_id)
    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc())
        .all()
    )


@router.get("/{conversation_id}/latest-image", response_model=LatestImageResponse)
async def get_latest_image(
    conversation_id: str,
    db: Session = Depends(get_db),
):
    """
    Most recent image in the conversation, so a follow-up prompt can edit it.
    A message's processed image wins over the image it carries.
    """
    _get_conversation_or_404(db, conversation_id)
    messages = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc())
        .all()
    )

    for message in messages:
        job = (
            db.query(ImageProcessingJob)
            .filter(ImageProcessingJob.message_id == message.id)
            .order_by(ImageProcessingJob.created_at.desc())
            .first()
        )
        if job and job.processed_image_url:
            return {"image_url": job.processed_image_url}
        if message.image_url:
            return {"image_url": message.image_url}

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="No image in this conversation"
    )
