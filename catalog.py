"""Product queries shared by the products, stores, cart and favorites routes."""
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from models import Favorite, Product, Review, Store, User
from schemas import ProductOut


def live_seller():
    """Products whose seller account has not been deleted."""
    return Product.seller.has(User.deleted.is_(False))


def visible():
    """Products shown in public listings and eligible for purchase."""
    return and_(Product.deleted.is_(False), Product.paused.is_(False))


def product_select(user_id: Optional[int] = None, liked: bool = False) -> Select:
    """Select products with rating aggregates, store info and, for a known
    user, the ``is_favorite`` flag. ``liked`` keeps only that user's favorites.
    Products of deleted sellers are left out."""
    ratings = (
        select(
            Review.product_id.label("product_id"),
            func.avg(Review.rating).label("rating"),
            func.count(Review.id).label("rating_count"),
        )
        .group_by(Review.product_id)
        .subquery()
    )
    columns = [
        Product,
        func.coalesce(ratings.c.rating, 0).label("rating"),
        func.coalesce(ratings.c.rating_count, 0).label("rating_count"),
        Store.id.label("store_id"),
        Store.store_name.label("store_name"),
    ]
    if user_id is not None:
        columns.append(Favorite.user_id.is_not(None).label("is_favorite"))

    stmt = (
        select(*columns)
        .outerjoin(ratings, ratings.c.product_id == Product.id)
        .outerjoin(Store, Store.seller_id == Product.seller_id)
    )
    if user_id is not None:
        on = and_(Favorite.product_id == Product.id, Favorite.user_id == user_id)
        stmt = stmt.join(Favorite, on) if liked else stmt.outerjoin(Favorite, on)
    return stmt.where(live_seller())


def apply_filters(stmt: Select, category: Optional[str] = None, search: Optional[str] = None,
                  seller_id: Optional[int] = None, min_price=None, max_price=None) -> Select:
    if category:
        stmt = stmt.where(Product.category == category)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(func.lower(Product.name).like(pattern), func.lower(Product.description).like(pattern)))
    if seller_id is not None:
        stmt = stmt.where(Product.seller_id == seller_id)
    if min_price is not None:
        stmt = stmt.where(Product.price >= min_price)
    if max_price is not None:
        stmt = stmt.where(Product.price <= max_price)
    return stmt


def to_product_out(row) -> ProductOut:
    mapping = row._mapping
    product = mapping[Product]
    out = ProductOut.model_validate(product)
    out.rating = round(float(mapping["rating"] or 0), 2)
    out.ratingCount = int(mapping["rating_count"] or 0)
    out.store_id = mapping["store_id"]
    out.store_name = mapping["store_name"]
    if "is_favorite" in mapping:
        out.is_favorite = bool(mapping["is_favorite"])
    return out


def get_product_out(db: Session, product_id: int, user_id: Optional[int] = None) -> ProductOut:
    stmt = product_select(user_id).where(Product.id == product_id, Product.deleted.is_(False))
    row = db.execute(stmt).first()
    if row is None:
        raise HTTPException(404, "Product not found")
    return to_product_out(row)


def get_live_product(db: Session, product_id: int) -> Product:
    stmt = select(Product).where(Product.id == product_id, Product.deleted.is_(False), live_seller())
    product = db.execute(stmt).scalar_one_or_none()
    if product is None:
        raise HTTPException(404, "Product not found")
    return product
