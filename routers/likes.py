from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from auth import get_current_user
from catalog import live_seller, visible
from database import get_db
from models import Product, ProductLike, User
from pagination import PageParams, paginate
from schemas import LikeCheck, LikedProduct, LikerOut, LikesCount, LikeToggleResponse, Message, Page, ProductRef

router = APIRouter(prefix="/api/likes", tags=["Likes"])


def _likeable_product(db: Session, product_id: int) -> Product:
    product = db.execute(
        select(Product).where(Product.id == product_id, visible(), live_seller())
    ).scalar_one_or_none()
    if product is None:
        raise HTTPException(404, "Product not found or not available")
    return product


@router.get("/user/me", response_model=Page[LikedProduct])
def my_likes(params: PageParams = Depends(), user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    seller = aliased(User)
    stmt = (
        select(Product, seller.first_name, seller.last_name)
        .join(ProductLike, ProductLike.product_id == Product.id)
        .join(seller, seller.id == Product.seller_id)
        .where(ProductLike.user_id == user.id, visible(), seller.deleted.is_(False))
        .order_by(ProductLike.product_id.desc())
    )
    rows, pagination = paginate(db, stmt, params)
    items = [
        LikedProduct(
            product_id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            category=product.category,
            image_url=product.image_url,
            seller_first_name=first_name,
            seller_last_name=last_name,
        )
        for product, first_name, last_name in rows
    ]
    return {"items": items, "pagination": pagination}


@router.get("/check/{product_id}", response_model=LikeCheck)
def check_like(product_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"liked": db.get(ProductLike, (user.id, product_id)) is not None}


@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED)
def like_product(payload: ProductRef, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _likeable_product(db, payload.product_id)
    if db.get(ProductLike, (user.id, payload.product_id)) is not None:
        raise HTTPException(409, "Product already liked")
    db.add(ProductLike(user_id=user.id, product_id=payload.product_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "Product already liked")
    return {"message": "Product liked successfully"}


@router.delete("/{product_id}", response_model=Message)
def unlike_product(product_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    like = db.get(ProductLike, (user.id, product_id))
    if like is None:
        raise HTTPException(404, "Product not found in likes")
    db.delete(like)
    db.commit()
    return {"message": "Product unliked successfully"}


@router.get("/product/{product_id}/count", response_model=LikesCount)
def likes_count(product_id: int, db: Session = Depends(get_db)):
    stmt = select(func.count()).select_from(ProductLike).where(ProductLike.product_id == product_id)
    count = db.execute(stmt).scalar_one()
    return {"likes_count": count}


@router.get("/product/{product_id}/users", response_model=Page[LikerOut])
def likers(product_id: int, params: PageParams = Depends(), db: Session = Depends(get_db)):
    stmt = (
        select(User.first_name, User.last_name)
        .join(ProductLike, ProductLike.user_id == User.id)
        .where(ProductLike.product_id == product_id, User.deleted.is_(False), User.is_active.is_(True))
        .order_by(ProductLike.user_id)
    )
    rows, pagination = paginate(db, stmt, params)
    return {"items": [LikerOut(first_name=r.first_name, last_name=r.last_name) for r in rows],
            "pagination": pagination}


@router.post("/toggle/{product_id}", response_model=LikeToggleResponse)
def toggle_like(product_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _likeable_product(db, product_id)
    like = db.get(ProductLike, (user.id, product_id))
    if like is not None:
        db.delete(like)
        db.commit()
        return {"message": "Product unliked successfully", "liked": False}

    db.add(ProductLike(user_id=user.id, product_id=product_id))
    db.commit()
    return {"message": "Product liked successfully", "liked": True}
