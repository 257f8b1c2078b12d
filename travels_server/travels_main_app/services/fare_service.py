"""Fare calculator - pure fare breakdown computation"""

from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Optional

from django.conf import settings

from ..utils.constants import FareRules
from ..utils.money import to_money, percent_of


@dataclass(frozen=True)
class FareBreakdown:
    fare_amount: Decimal
    gst_amount: Decimal
    convenience_fee: Decimal
    discount_amount: Decimal
    coupon_code: Optional[str]
    total_amount: Decimal

    def as_dict(self):
        return asdict(self)


class FareService:
    """
    Turns a per-seat fare, a seat count and an optional coupon into a
    FareBreakdown. No I/O; identical inputs always give identical output.

    Every money value is rounded to cents (half-up) as it is computed.
    """

    def __init__(self, rules=FareRules, coupon_code=None):
        self.rules = rules
        self.coupon_code = (coupon_code or getattr(settings, 'COUPON_CODE', '') or '').strip().upper()

    def compute_breakdown(self, base_fare_per_seat, seat_count, coupon_code=None):
        base_fare_per_seat = to_money(base_fare_per_seat)
        if base_fare_per_seat <= 0:
            raise ValueError('base_fare_per_seat must be > 0')
        if not isinstance(seat_count, int) or isinstance(seat_count, bool) or seat_count < 1:
            raise ValueError('seat_count must be a positive integer')

        fare = to_money(base_fare_per_seat * seat_count)
        gst = percent_of(fare, self.rules.GST_PERCENT)
        fee = percent_of(fare, self.rules.CONVENIENCE_FEE_PERCENT)
        fee = min(max(fee, to_money(self.rules.CONVENIENCE_FEE_MIN)), to_money(self.rules.CONVENIENCE_FEE_MAX))

        applied_coupon = None
        discount = Decimal('0.00')
        if self.coupon_applies(coupon_code, fare):
            applied_coupon = self.coupon_code
            discount = min(to_money(self.rules.COUPON_MAX_DISCOUNT), percent_of(fare, self.rules.COUPON_PERCENT))

        total = max(Decimal('0.00'), to_money(fare + gst + fee - discount))

        return FareBreakdown(
            fare_amount=fare,
            gst_amount=gst,
            convenience_fee=fee,
            discount_amount=discount,
            coupon_code=applied_coupon,
            total_amount=total,
        )

    def coupon_applies(self, coupon_code, fare):
        # Threshold is checked against the aggregate fare, not the per-seat fare
        if not coupon_code or not self.coupon_code:
            return False
        return coupon_code.strip().upper() == self.coupon_code and fare >= to_money(self.rules.COUPON_MIN_FARE)


def compute_breakdown(base_fare_per_seat, seat_count, coupon_code=None):
    return FareService().compute_breakdown(base_fare_per_seat, seat_count, coupon_code)
