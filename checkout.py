"""
Checkout and the sale status flow.

Checkout re-reads price and stock of every product, validates each line and
writes the sale, its line items and the cart clearance in one transaction.
Stock is advisory: it is checked but never decremented.
"""
import logging
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import CartItem, Notification, Product, Sale, SaleProduct, User
from schemas import SaleLineOut, SaleOut, SaleStatus

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

BUYER_STATUSES = {SaleStatus.cancelled, SaleStatus.received}
SELLER_STATUSES = {
    SaleStatus.confirmed,
    SaleStatus.preparing,
    SaleStatus.shipped,
    SaleStatus.delivered,
    SaleStatus.paid,
    SaleStatus.rejected,
}
TERMINAL_STATUSES = {SaleStatus.cancelled, SaleStatus.rejected, SaleStatus.received}


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def notify(db: Session, user_id: int, type_: str, message: str, title: Optional[str] = None,
           product_id: Optional[int] = None, sale_id: Optional[int] = None) -> Notification:
    notification = Notification(
        user_id=user_id, type=type_, title=title, message=message, product_id=product_id, sale_id=sale_id
    )
    db.add(notification)
    return notification


def merge_lines(lines: Iterable[Tuple[int, int]]) -> "OrderedDict[int, int]":
    merged: "OrderedDict[int, int]" = OrderedDict()
    for product_id, quantity in lines:
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


def cart_lines(db: Session, user_id: int) -> List[Tuple[int, int]]:
    rows = db.execute(
        select(CartItem.product_id, CartItem.quantity).where(CartItem.user_id == user_id).order_by(CartItem.id)
    )
    return [(row.product_id, row.quantity) for row in rows]


def price_lines(db: Session, buyer: User, requested: "OrderedDict[int, int]") -> List[Tuple[Product, int, Decimal, Decimal]]:
    """Validate requested quantities against the current product rows.

    Returns ``(product, quantity, unit_price, line_total)`` per line, priced
    from the product table only.
    """
    products = {
        p.id: p for p in db.execute(select(Product).where(Product.id.in_(list(requested)))).scalars()
    }
    if len(products) != len(requested):
        raise HTTPException(404, "One or more products not found")

    priced = []
    for product_id, quantity in requested.items():
        product = products[product_id]
        if product.deleted or product.paused or product.seller.deleted:
            raise HTTPException(400, f"Product '{product.name}' is not available for purchase")
        if product.seller_id == buyer.id:
            raise HTTPException(400, "You cannot buy your own products")
        if quantity > product.stock:
            raise HTTPException(
                400, f"Insufficient stock for '{product.name}': {product.stock} available, {quantity} requested"
            )
        unit_price = money(product.price)
        priced.append((product, quantity, unit_price, money(unit_price * quantity)))
    return priced


def place_order(db: Session, buyer: User, lines: Optional[List[Tuple[int, int]]] = None,
                note: Optional[str] = None, address: Optional[str] = None) -> Sale:
    """Create a pending sale for ``buyer``.

    With no explicit ``lines`` the buyer's cart is purchased. The cart is
    emptied in the same transaction as the sale insert.
    """
    if not lines:
        lines = cart_lines(db, buyer.id)
        if not lines:
            raise HTTPException(400, "Cart is empty")

    priced = price_lines(db, buyer, merge_lines(lines))
    total = sum((line_total for _, _, _, line_total in priced), Decimal("0.00"))

    try:
        sale = Sale(
            user_id=buyer.id,
            total_amount=total,
            status=SaleStatus.pending.value,
            note=note,
            address=address if address is not None else (buyer.address or ""),
        )
        sale.products = [
            SaleProduct(product_id=product.id, quantity=quantity, unit_price=unit_price, total_price=line_total)
            for product, quantity, unit_price, line_total in priced
        ]
        db.add(sale)
        db.flush()

        db.execute(delete(CartItem).where(CartItem.user_id == buyer.id))

        for seller_id in sorted({product.seller_id for product, _, _, _ in priced}):
            notify(db, seller_id, "NEW_SALE", f"You have a new sale (#{sale.id})", title="New sale", sale_id=sale.id)

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Checkout failed for user %s", buyer.id)
        raise

    logger.info("Sale %s created for user %s: %s items, total %s", sale.id, buyer.id, len(priced), total)
    return sale


def is_seller_of(sale: Sale, user: User) -> bool:
    return any(line.product.seller_id == user.id for line in sale.products)


def change_status(db: Session, sale: Sale, actor: User, new_status: SaleStatus,
                  invoice_id: Optional[int] = None) -> Sale:
    is_buyer = sale.user_id == actor.id
    is_seller = is_seller_of(sale, actor)
    if not (is_buyer or is_seller):
        raise HTTPException(404, "Sale not found")

    current = SaleStatus(sale.status)
    if current in TERMINAL_STATUSES:
        raise HTTPException(409, f"Sale is already {current.value}")
    if current == new_status:
        raise HTTPException(409, f"Sale is already {current.value}")

    if new_status in BUYER_STATUSES:
        if not is_buyer:
            raise HTTPException(403, "Only the buyer can set this status")
        if new_status == SaleStatus.cancelled and current != SaleStatus.pending:
            raise HTTPException(409, "Only pending sales can be cancelled")
    elif new_status in SELLER_STATUSES:
        if not is_seller:
            raise HTTPException(403, "Only a seller of this sale can set this status")
    else:
        raise HTTPException(400, f"Cannot move a sale back to {new_status.value}")
    if invoice_id is not None and not is_seller:
        raise HTTPException(403, "Only a seller of this sale can attach an invoice")

    sale.status = new_status.value
    if invoice_id is not None:
        sale.invoice_id = invoice_id

    message = f"Sale #{sale.id} is now {new_status.value}"
    if is_buyer:
        for seller_id in sorted({line.product.seller_id for line in sale.products}):
            notify(db, seller_id, "SALE_STATUS", message, title="Sale updated", sale_id=sale.id)
    else:
        notify(db, sale.user_id, "SALE_STATUS", message, title="Sale updated", sale_id=sale.id)
    db.commit()
    logger.info("Sale %s: %s -> %s by user %s", sale.id, current.value, new_status.value, actor.id)
    return sale


def sale_to_out(sale: Sale) -> SaleOut:
    return SaleOut(
        id=sale.id,
        user_id=sale.user_id,
        date=sale.date,
        total_amount=sale.total_amount,
        status=sale.status,
        note=sale.note,
        invoice_id=sale.invoice_id,
        address=sale.address,
        products=[
            SaleLineOut(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
                product_name=line.product.name,
                product_description=line.product.description,
                product_category=line.product.category,
                product_image_url=line.product.image_url,
                seller_id=line.product.seller_id,
            )
            for line in sale.products
        ],
    )
