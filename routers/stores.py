import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import get_current_seller, get_current_user, get_optional_user
from catalog import apply_filters, product_select, to_product_out, visible
from database import get_db
from models import Product, Store, User
from pagination import PageParams, paginate
from schemas import Page, ProductOut, StoreCreate, StoreOut, StoreResponse, StoreUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stores", tags=["Stores"])


def _open_stores():
    return select(Store).where(Store.seller.has(User.deleted.is_(False)))


def _get_store(db: Session, store_id: int) -> Store:
    store = db.execute(_open_stores().where(Store.id == store_id)).scalar_one_or_none()
    if store is None:
        raise HTTPException(404, "Store not found")
    return store


@router.get("", response_model=Page[StoreOut])
def list_stores(params: PageParams = Depends(), db: Session = Depends(get_db)):
    stmt = _open_stores().order_by(Store.id.desc())
    stores, pagination = paginate(db, stmt, params, scalars=True)
    return {"items": [StoreOut.model_validate(s) for s in stores], "pagination": pagination}


@router.post("", response_model=StoreResponse, status_code=status.HTTP_201_CREATED)
def create_store(payload: StoreCreate, seller: User = Depends(get_current_seller), db: Session = Depends(get_db)):
    if db.execute(select(Store.id).where(Store.seller_id == seller.id)).first():
        raise HTTPException(409, "You already have a store")
    store = Store(seller_id=seller.id, **payload.model_dump())
    db.add(store)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "You already have a store")
    logger.info("Store %s created for seller %s", store.id, seller.id)
    return {"message": "Store created successfully", "store": StoreOut.model_validate(store)}


@router.get("/me", response_model=StoreResponse)
def my_store(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    store = db.execute(select(Store).where(Store.seller_id == user.id)).scalar_one_or_none()
    if store is None:
        raise HTTPException(404, "Store not found")
    return {"store": StoreOut.model_validate(store)}


@router.get("/{store_id}", response_model=StoreResponse)
def get_store(store_id: int, db: Session = Depends(get_db)):
    return {"store": StoreOut.model_validate(_get_store(db, store_id))}


@router.get("/{store_id}/products", response_model=Page[ProductOut])
def store_products(
    store_id: int,
    params: PageParams = Depends(),
    category: Optional[str] = None,
    search: Optional[str] = None,
    liked: bool = False,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    store = _get_store(db, store_id)
    if liked and user is None:
        raise HTTPException(401, "Authentication required to filter by liked products")

    stmt = product_select(user.id if user else None, liked=liked).where(visible())
    stmt = apply_filters(stmt, category=category, search=search, seller_id=store.seller_id)
    rows, pagination = paginate(db, stmt.order_by(Product.id.desc()), params)
    return {"items": [to_product_out(r) for r in rows], "pagination": pagination}


@router.put("/{store_id}", response_model=StoreResponse)
def update_store(store_id: int, payload: StoreUpdate, user: User = Depends(get_current_user),
                 db: Session = Depends(get_db)):
    """Partial update by the owner. ``null`` values are ignored rather than
    clearing the column; a body with no non-null field is a 400."""
    store = _get_store(db, store_id)
    if store.seller_id != user.id:
        raise HTTPException(403, "You can only update your own store")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(400, "No valid fields provided for update")
    for field, value in changes.items():
        setattr(store, field, value)
    db.commit()
    return {"message": "Store updated successfully", "store": StoreOut.model_validate(store)}
