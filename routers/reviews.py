import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import get_current_user
from catalog import get_live_product
from database import get_db
from models import Review, User
from pagination import PageParams, paginate
from schemas import Message, Page, ReviewCreate, ReviewListItem, ReviewOut, ReviewResponse, ReviewUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


class ReviewPageParams(PageParams):
    def __init__(self, page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=50)):
        super().__init__(page, limit)


def _own_review(db: Session, review_id: int, user: User) -> Review:
    review = db.get(Review, review_id)
    if review is None:
        raise HTTPException(404, "Review not found")
    if review.user_id != user.id:
        raise HTTPException(403, "You can only modify your own reviews")
    return review


@router.get("", response_model=Page[ReviewListItem])
def list_reviews(
    product_id: int = Query(..., gt=0),
    params: ReviewPageParams = Depends(),
    db: Session = Depends(get_db),
):
    get_live_product(db, product_id)
    stmt = (
        select(Review, User.first_name, User.last_name)
        .join(User, Review.user_id == User.id)
        .where(Review.product_id == product_id, User.deleted.is_(False))
        .order_by(Review.timestamp.desc(), Review.id.desc())
    )
    rows, pagination = paginate(db, stmt, params)
    items = [
        ReviewListItem(
            id=review.id,
            description=review.description,
            rating=review.rating,
            timestamp=review.timestamp,
            first_name=first_name,
            last_name=last_name,
        )
        for review, first_name, last_name in rows
    ]
    return {"items": items, "pagination": pagination}


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(payload: ReviewCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    get_live_product(db, payload.product_id)

    existing = db.execute(
        select(Review.id).where(Review.user_id == user.id, Review.product_id == payload.product_id)
    ).first()
    if existing:
        raise HTTPException(409, "You have already reviewed this product")

    review = Review(user_id=user.id, **payload.model_dump())
    db.add(review)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "You have already reviewed this product")
    logger.info("User %s reviewed product %s", user.id, payload.product_id)
    return {"message": "Review created successfully", "review": ReviewOut.model_validate(review)}


@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(review_id: int, payload: ReviewUpdate, user: User = Depends(get_current_user),
                  db: Session = Depends(get_db)):
    review = _own_review(db, review_id, user)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    for field, value in changes.items():
        setattr(review, field, value)
    db.commit()
    return {"message": "Review updated successfully", "review": ReviewOut.model_validate(review)}


@router.delete("/{review_id}", response_model=Message)
def delete_review(review_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    review = _own_review(db, review_id, user)
    db.delete(review)
    db.commit()
    return {"message": "Review deleted successfully"}
