# earnings/plan.py
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, List, Tuple

from models import MAX_REFERRAL_LEVEL


class CommissionPlan:
    """
    Referral commission rates by level, as fractions of the purchase amount.
    Level 1 is the buyer's direct inviter; the chain stops at MAX_REFERRAL_LEVEL.
    """

    MAX_LEVEL = MAX_REFERRAL_LEVEL
    MAX_TOTAL_RATE = Decimal('0.5')

    def __init__(self, rates: List[Decimal]):
        self.rates = {level: rate for level, rate in enumerate(rates, start=1)}

    @classmethod
    def from_config(cls, config) -> "CommissionPlan":
        raw = config.get("COMMISSION_RATES", "")
        if isinstance(raw, str):
            raw = [part for part in raw.split(",") if part.strip()]
        try:
            rates = [Decimal(str(part).strip()) for part in raw]
        except InvalidOperation:
            raise ValueError(f"COMMISSION_RATES is not a list of decimals: {raw!r}")
        return cls(rates)

    def rate_for(self, level: int) -> Decimal:
        if level < 1 or level > self.MAX_LEVEL:
            return Decimal('0')
        return self.rates.get(level, Decimal('0'))

    @property
    def total_rate(self) -> Decimal:
        return sum(self.rates.values(), Decimal('0'))

    def validate(self) -> Tuple[bool, str]:
        """Validate that the plan is mathematically sound"""
        if len(self.rates) != self.MAX_LEVEL:
            return False, f"Expected {self.MAX_LEVEL} commission rates, got {len(self.rates)}"

        for level, rate in self.rates.items():
            if rate < 0 or rate > 1:
                return False, f"Commission rate for level {level} out of range: {rate}"

        if self.total_rate <= 0:
            return False, "Total commission rate must be positive"

        if self.total_rate > self.MAX_TOTAL_RATE:
            return False, f"Total commission rate too high: {self.total_rate * 100}%"

        return True, f"Commission plan valid: {self.total_rate * 100:.1f}% total across {self.MAX_LEVEL} levels"

    def summary(self) -> Dict[str, Any]:
        return {
            'levels': {
                level: {
                    'rate': float(rate),
                    'rate_display': f"{rate * 100:.1f}%",
                }
                for level, rate in sorted(self.rates.items())
            },
            'total_rate': float(self.total_rate),
            'max_level': self.MAX_LEVEL,
        }


def get_commission_plan() -> CommissionPlan:
    from flask import current_app
    return current_app.extensions["commission_plan"]
