from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from auth import get_current_user
from checkout import change_status, is_seller_of, place_order, sale_to_out
from database import get_db
from models import Product, Sale, SaleProduct, User
from pagination import PageParams, paginate
from schemas import Page, SaleCreate, SaleOut, SaleResponse, SaleStatus, StatusChange

router = APIRouter(prefix="/api/sales", tags=["Sales"])


def _sales_query():
    return select(Sale).options(selectinload(Sale.products).selectinload(SaleProduct.product))


def _load_visible_sale(db: Session, sale_id: int, user: User) -> Sale:
    sale = db.execute(_sales_query().where(Sale.id == sale_id)).scalar_one_or_none()
    if sale is None or not (sale.user_id == user.id or is_seller_of(sale, user)):
        raise HTTPException(404, "Sale not found")
    return sale


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
def create_sale(payload: SaleCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    lines = [(line.product_id, line.quantity) for line in payload.products]
    sale = place_order(db, user, lines, note=payload.note, address=payload.address)
    return {"message": "Sale created successfully", "sale": sale_to_out(sale)}


@router.get("", response_model=Page[SaleOut])
def my_purchases(
    params: PageParams = Depends(),
    status: Optional[SaleStatus] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stmt = _sales_query().where(Sale.user_id == user.id)
    if status is not None:
        stmt = stmt.where(Sale.status == status.value)
    sales, pagination = paginate(db, stmt.order_by(Sale.date.desc(), Sale.id.desc()), params, scalars=True)
    return {"items": [sale_to_out(s) for s in sales], "pagination": pagination}


@router.get("/seller", response_model=Page[SaleOut])
def my_sales_as_seller(
    params: PageParams = Depends(),
    status: Optional[SaleStatus] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    sold = select(SaleProduct.sale_id).join(Product, SaleProduct.product_id == Product.id).where(
        Product.seller_id == user.id
    )
    stmt = _sales_query().where(Sale.id.in_(sold))
    if status is not None:
        stmt = stmt.where(Sale.status == status.value)
    sales, pagination = paginate(db, stmt.order_by(Sale.date.desc(), Sale.id.desc()), params, scalars=True)
    return {"items": [sale_to_out(s) for s in sales], "pagination": pagination}


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(sale_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"sale": sale_to_out(_load_visible_sale(db, sale_id, user))}


@router.post("/{sale_id}/cancel", response_model=SaleResponse)
def cancel_sale(sale_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    sale = _load_visible_sale(db, sale_id, user)
    if sale.user_id != user.id:
        raise HTTPException(403, "Only the buyer can cancel a sale")
    change_status(db, sale, user, SaleStatus.cancelled)
    return {"message": "Sale cancelled", "sale": sale_to_out(sale)}


@router.patch("/{sale_id}/status", response_model=SaleResponse)
def update_sale_status(sale_id: int, payload: StatusChange, user: User = Depends(get_current_user),
                       db: Session = Depends(get_db)):
    sale = _load_visible_sale(db, sale_id, user)
    change_status(db, sale, user, payload.status, payload.invoice_id)
    return {"message": "Sale status updated", "sale": sale_to_out(sale)}
