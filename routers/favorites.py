from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth import get_current_user
from catalog import get_live_product, product_select, to_product_out
from database import get_db
from models import Favorite, Product, User
from pagination import PageParams, paginate
from schemas import FavoriteToggleResponse, Page, ProductOut, ProductRef

router = APIRouter(prefix="/api/favorites", tags=["Favorites"])


@router.post("/toggle", response_model=FavoriteToggleResponse)
def toggle_favorite(payload: ProductRef, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    get_live_product(db, payload.product_id)

    existing = db.get(Favorite, (user.id, payload.product_id))
    if existing is not None:
        db.delete(existing)
        db.commit()
        return {"message": "Product removed from favorites", "is_favorite": False}

    db.add(Favorite(user_id=user.id, product_id=payload.product_id))
    db.commit()
    return {"message": "Product added to favorites", "is_favorite": True}


@router.get("", response_model=Page[ProductOut])
def list_favorites(params: PageParams = Depends(), user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    stmt = (
        product_select(user.id, liked=True)
        .where(Product.deleted.is_(False))
        .order_by(Favorite.created_at.desc(), Product.id.desc())
    )
    rows, pagination = paginate(db, stmt, params)
    return {"items": [to_product_out(r) for r in rows], "pagination": pagination}
