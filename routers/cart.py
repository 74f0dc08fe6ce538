"""Shopping cart. Quantities are clamped to stock whenever the cart is written."""
import logging
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from auth import get_current_user
from catalog import live_seller, product_select, to_product_out
from checkout import merge_lines, money
from database import get_db
from models import CartItem, Product, User
from schemas import CartItemOut, CartOut, CartUpdate, CartValidation, Message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["Cart"])


def load_cart(db: Session, user: User) -> CartOut:
    stmt = (
        product_select(user.id)
        .add_columns(CartItem.quantity.label("quantity"))
        .join(CartItem, CartItem.product_id == Product.id)
        .where(CartItem.user_id == user.id, Product.deleted.is_(False))
        .order_by(CartItem.id)
    )
    items = []
    total = Decimal("0.00")
    for row in db.execute(stmt):
        product = to_product_out(row)
        subtotal = money(row.Product.price * row.quantity)
        total += subtotal
        items.append(CartItemOut(product_id=product.id, quantity=row.quantity, subtotal=subtotal, product=product))
    return CartOut(items=items, total=total)


@router.get("", response_model=CartOut)
def get_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return load_cart(db, user)


@router.put("", response_model=CartOut)
def update_cart(payload: CartUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    requested = merge_lines((item.product_id, item.quantity) for item in payload.items)
    products = {}
    if requested:
        products = {
            p.id: p
            for p in db.execute(
                select(Product).where(
                    Product.id.in_(list(requested)), Product.deleted.is_(False), live_seller()
                )
            ).scalars()
        }

    warnings = []
    accepted = []
    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if product is None:
            warnings.append(f"Product with ID {product_id} not found")
            continue
        if product.paused:
            warnings.append(f"Product '{product.name}' is currently unavailable")
            continue
        if product.seller_id == user.id:
            warnings.append(f"Product '{product.name}' is your own product")
            continue
        if product.stock <= 0:
            warnings.append(f"Product '{product.name}' is out of stock")
            continue
        if quantity > product.stock:
            warnings.append(
                f"Product '{product.name}' quantity adjusted from {quantity} to {product.stock} (max available)"
            )
            quantity = product.stock
        accepted.append(CartItem(user_id=user.id, product_id=product.id, quantity=quantity, unit_price=product.price))

    db.execute(delete(CartItem).where(CartItem.user_id == user.id))
    db.add_all(accepted)
    db.commit()

    if warnings:
        logger.warning("Cart update for user %s: %s", user.id, "; ".join(warnings))

    cart = load_cart(db, user)
    cart.message = "Cart updated successfully"
    cart.warnings = warnings
    return cart


@router.delete("", response_model=Message)
def clear_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    db.execute(delete(CartItem).where(CartItem.user_id == user.id))
    db.commit()
    return {"message": "Cart cleared successfully"}


@router.get("/validate", response_model=CartValidation)
def validate_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = db.execute(
        select(CartItem, Product)
        .join(Product, CartItem.product_id == Product.id)
        .where(CartItem.user_id == user.id)
        .order_by(CartItem.id)
    )
    errors = []
    for item, product in rows:
        if product.deleted or product.seller.deleted:
            errors.append(f"Product '{product.name}' no longer exists")
            continue
        if product.paused:
            errors.append(f"Product '{product.name}' is currently unavailable")
        if item.quantity > product.stock:
            if product.stock == 0:
                errors.append(f"Product '{product.name}' is out of stock")
            else:
                errors.append(
                    f"Product '{product.name}' only has {product.stock} units available (cart has {item.quantity})"
                )
        if money(item.unit_price) != money(product.price):
            errors.append(
                f"Product '{product.name}' price has changed from ${money(item.unit_price)} to ${money(product.price)}"
            )
    return {"valid": not errors, "errors": errors}
