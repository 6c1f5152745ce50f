# earnings/catalog.py
import logging
from decimal import Decimal
from typing import List, Dict, Any

from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Product
from errors import ValidationError, ConflictError
from utils import parse_amount

logger = logging.getLogger(__name__)

# Daily return per product; price buys a 30-day plan
DEFAULT_PRODUCTS = [
    {"name": "Produto 1", "price": "6000", "daily_return": "1000"},
    {"name": "Produto 2", "price": "12000", "daily_return": "2000"},
    {"name": "Produto 3", "price": "36000", "daily_return": "6000"},
    {"name": "Produto 4", "price": "96000", "daily_return": "16000"},
    {"name": "Produto 5", "price": "180000", "daily_return": "30000"},
    {"name": "Produto 6", "price": "360000", "daily_return": "60000"},
    {"name": "Produto 7", "price": "960000", "daily_return": "160000"},
]
DEFAULT_DURATION_DAYS = 30


def _positive_int(value, field_name, allow_none=False):
    if value is None and allow_none:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a positive integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be a positive integer")
    return number


def create_product(data: Dict[str, Any]) -> Product:
    name = str(data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    product = Product(
        name=name,
        price=parse_amount(data.get("price"), "price"),
        daily_return=parse_amount(data.get("daily_return"), "daily_return"),
        duration_days=_positive_int(data.get("duration_days", DEFAULT_DURATION_DAYS), "duration_days"),
        purchase_limit=_positive_int(data.get("purchase_limit"), "purchase_limit", allow_none=True),
        is_active=bool(data.get("is_active", True)),
    )
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Product '{name}' already exists")

    logger.info(f"Product {product.id} '{name}' created: price {product.price}, daily {product.daily_return}")
    return product


def seed_default_products() -> List[Product]:
    """Insert the default catalog; existing names are left untouched."""
    created = []
    for entry in DEFAULT_PRODUCTS:
        if Product.query.filter_by(name=entry["name"]).first():
            continue
        product = Product(
            name=entry["name"],
            price=Decimal(entry["price"]),
            daily_return=Decimal(entry["daily_return"]),
            duration_days=DEFAULT_DURATION_DAYS,
        )
        db.session.add(product)
        created.append(product)
    db.session.commit()
    logger.info(f"Seeded {len(created)} products")
    return created
