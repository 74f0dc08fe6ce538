import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete
from sqlalchemy.orm import Session

from auth import get_current_seller, get_current_user, get_optional_user
from catalog import apply_filters, get_live_product, get_product_out, product_select, to_product_out, visible
from database import get_db
from models import CartItem, Product, User
from pagination import PageParams, paginate
from schemas import Message, Page, ProductCreate, ProductOut, ProductResponse, ProductUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])


def _owned_product(db: Session, product_id: int, user: User) -> Product:
    product = get_live_product(db, product_id)
    if product.seller_id != user.id:
        raise HTTPException(403, "You can only modify your own products")
    return product


@router.get("", response_model=Page[ProductOut])
def list_products(
    params: PageParams = Depends(),
    category: Optional[str] = None,
    search: Optional[str] = None,
    seller_id: Optional[int] = Query(None, gt=0),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    liked: bool = False,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    if liked and user is None:
        raise HTTPException(401, "Authentication required to filter by liked products")

    stmt = product_select(user.id if user else None, liked=liked).where(visible())
    stmt = apply_filters(stmt, category, search, seller_id, min_price, max_price)
    rows, pagination = paginate(db, stmt.order_by(Product.id.desc()), params)
    return {"items": [to_product_out(r) for r in rows], "pagination": pagination}


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, user: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)):
    return {"product": get_product_out(db, product_id, user.id if user else None)}


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, seller: User = Depends(get_current_seller), db: Session = Depends(get_db)):
    product = Product(seller_id=seller.id, **payload.model_dump())
    db.add(product)
    db.commit()
    logger.info("Product %s created by seller %s", product.id, seller.id)
    return {"message": "Product created successfully", "product": get_product_out(db, product.id, seller.id)}


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(product_id: int, payload: ProductUpdate, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    """Partial update by the owner.

    Only fields with a value are applied; ``null`` never clears a column, and
    a body carrying nothing but nulls is rejected with 400.
    """
    product = _owned_product(db, product_id, user)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    return {"message": "Product updated successfully", "product": get_product_out(db, product.id, user.id)}


@router.delete("/{product_id}", response_model=Message)
def delete_product(product_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    product = _owned_product(db, product_id, user)
    product.deleted = True
    db.execute(delete(CartItem).where(CartItem.product_id == product.id))
    db.commit()
    logger.info("Product %s soft-deleted", product.id)
    return {"message": "Product deleted successfully"}
