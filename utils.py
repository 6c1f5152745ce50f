import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP

from errors import ValidationError

DECIMAL_QUANT = Decimal("0.01")
MAX_AMOUNT = Decimal("9999999999999999.99")
MOBILE_PATTERN = re.compile(r"^\+?\d{9,15}$")
IBAN_PATTERN = re.compile(r"^[A-Z0-9]{15,34}$")


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def quantize_money(value, rounding=ROUND_HALF_UP):
    return Decimal(value).quantize(DECIMAL_QUANT, rounding=rounding)


def quantize_down(value):
    """Quantize decimal to 2 decimal places, never rounding up."""
    return quantize_money(value, rounding=ROUND_DOWN)


def parse_amount(value, field_name="amount"):
    """Parse a positive money amount from request data."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field_name} format")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field_name} must be positive")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field_name} is too large")
    return quantize_money(amount)


def validate_mobile(mobile):
    return bool(mobile) and MOBILE_PATTERN.match(mobile) is not None


def normalize_iban(iban):
    return re.sub(r"\s+", "", iban or "").upper()


def validate_iban(iban):
    return IBAN_PATTERN.match(iban) is not None


def money(value):
    """JSON representation for Numeric columns."""
    return float(value) if value is not None else 0.0


def isoformat(value):
    return value.isoformat() if value else None


def parse_pagination(args, default_limit=50, max_limit=200):
    try:
        page = max(int(args.get("page", 1)), 1)
        limit = min(max(int(args.get("limit", default_limit)), 1), max_limit)
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    return page, limit
