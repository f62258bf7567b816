"""
Library API Routes
A user's saved images. Entries are created and deleted only by explicit user action.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db
from app.models.saved_image import SavedImage
from app.models.user import User
from app.schemas.saved_image import SavedImageCreate, SavedImageResponse

router = APIRouter()


def get_or_create_user(db: Session, user_id: str) -> User:
    """Owner row for library entries."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        user = User(id=user_id, username=user_id)
        db.add(user)
        db.flush()
    return user


@router.post("", response_model=SavedImageResponse, status_code=status.HTTP_201_CREATED)
async def save_image(
    request: SavedImageCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Save an already produced image to the caller's library."""
    get_or_create_user(db, user_id)

    saved = SavedImage(
        user_id=user_id,
        title=request.title.strip(),
        object_path=request.object_path,
        original_image_path=request.original_image_path,
        prompt=request.prompt,
        tags=[tag.strip() for tag in request.tags if tag.strip()],
    )
    db.add(saved)
    db.commit()
    db.refresh(saved)
    return saved


@router.get("", response_model=List[SavedImageResponse])
async def list_saved_images(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    tags: Optional[List[str]] = Query(None),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """List the caller's saved images, newest first. With tags, entries matching any of them."""
    query = (
        db.query(SavedImage)
        .filter(SavedImage.user_id == user_id)
        .order_by(SavedImage.created_at.desc())
    )

    # Tags are a JSON column, so overlap is checked here rather than in SQL
    if tags:
        wanted = set(tags)
        images = [image for image in query.all() if wanted.intersection(image.tags or [])]
        offset = (page - 1) * limit
        return images[offset:offset + limit]

    return query.offset((page - 1) * limit).limit(limit).all()


def _get_owned_or_404(db: Session, image_id: str, user_id: str) -> SavedImage:
    saved = (
        db.query(SavedImage)
        .filter(SavedImage.id == image_id, SavedImage.user_id == user_id)
        .first()
    )
    if not saved:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Saved image not found"
        )
    return saved


@router.get("/{image_id}", response_model=SavedImageResponse)
async def get_saved_image(
    image_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Get one of the caller's saved images."""
    return _get_owned_or_404(db, image_id, user_id)


@router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_saved_image(
    image_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Delete one of the caller's saved images."""
    saved = _get_owned_or_404(db, image_id, user_id)
    db.delete(saved)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
