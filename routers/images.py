import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

import config
from auth import get_current_user
from database import get_db
from models import Image, User
from schemas import ImageOut, ImageResponse, Message, PresignRequest, PresignResponse
from storage import S3Storage, StorageError, build_key, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/images", tags=["Images"])

PRESIGN_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}


@router.post("/upload", response_model=ImageResponse, status_code=status.HTTP_201_CREATED)
def upload_image(
    image: UploadFile = File(...),
    folder: str = Query("products", min_length=1, max_length=100),
    user: User = Depends(get_current_user),
    storage: S3Storage = Depends(get_storage),
    db: Session = Depends(get_db),
):
    content_type = image.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(400, "Only image files are allowed")
    data = image.file.read(config.MAX_UPLOAD_BYTES + 1)
    if not data:
        raise HTTPException(400, "No image file provided")
    if len(data) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(400, f"Image exceeds the {config.MAX_UPLOAD_BYTES} byte limit")

    try:
        uploaded = storage.upload(data, content_type, folder=folder, filename=image.filename or "upload")
    except StorageError as exc:
        logger.error("Image upload failed: %s", exc)
        raise HTTPException(502, "Failed to upload image")

    record = Image(user_id=user.id, **uploaded)
    db.add(record)
    db.commit()
    return {"message": "Image uploaded successfully", "image": ImageOut.model_validate(record)}


@router.post("/presigned-url", response_model=PresignResponse)
def presigned_url(payload: PresignRequest, user: User = Depends(get_current_user),
                  storage: S3Storage = Depends(get_storage)):
    if payload.content_type and payload.content_type not in PRESIGN_CONTENT_TYPES:
        raise HTTPException(400, "Invalid content type. Only images are allowed")

    key = build_key(payload.folder or "images", payload.filename)
    try:
        url = storage.presign(key, "put", config.PRESIGNED_URL_EXPIRES, content_type=payload.content_type)
    except StorageError as exc:
        logger.error("Presign failed: %s", exc)
        raise HTTPException(502, "Failed to generate presigned URL")
    return PresignResponse(
        presignedUrl=url,
        key=key,
        expiresIn=config.PRESIGNED_URL_EXPIRES,
        publicUrl=storage.public_url(key),
    )


@router.get("/{image_id}", response_model=ImageResponse)
def get_image(image_id: int, db: Session = Depends(get_db)):
    image = db.get(Image, image_id)
    if image is None:
        raise HTTPException(404, "Image not found")
    return {"image": ImageOut.model_validate(image)}


@router.delete("/{image_id}", response_model=Message)
def delete_image(image_id: int, user: User = Depends(get_current_user), storage: S3Storage = Depends(get_storage),
                 db: Session = Depends(get_db)):
    image = db.get(Image, image_id)
    if image is None:
        raise HTTPException(404, "Image not found")
    if image.user_id != user.id:
        raise HTTPException(403, "You can only delete your own images")

    try:
        storage.delete(image.key)
    except StorageError as exc:
        # the row goes even when the blob delete fails
        logger.warning("Blob delete failed for %s: %s", image.key, exc)

    db.delete(image)
    db.commit()
    return {"message": "Image deleted successfully"}
