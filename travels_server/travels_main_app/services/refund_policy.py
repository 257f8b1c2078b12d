"""Refund policy - time-to-departure refund tiers"""

from datetime import timedelta

from ..utils.constants import RefundRules


def refund_percent_for(departure_time, now):
    """
    >24h before departure -> 80, 6-24h -> 50, under 6h or departed -> 0.

    `now` must be the wall-clock time of the cancellation request.
    """
    remaining = departure_time - now
    if remaining > timedelta(hours=RefundRules.FULL_WINDOW_HOURS):
        return RefundRules.EARLY_PERCENT
    if remaining >= timedelta(hours=RefundRules.PARTIAL_WINDOW_HOURS):
        return RefundRules.LATE_PERCENT
    return RefundRules.NO_REFUND_PERCENT
