"""Tests for fare calculator"""

from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from ..services.fare_service import FareService, compute_breakdown


@override_settings(COUPON_CODE='FIRST10')
class FareServiceTest(SimpleTestCase):
    def setUp(self):
        self.service = FareService()

    def test_breakdown_without_coupon(self):
        breakdown = self.service.compute_breakdown(Decimal('500'), 2)

        self.assertEqual(breakdown.fare_amount, Decimal('1000.00'))
        self.assertEqual(breakdown.gst_amount, Decimal('50.00'))
        self.assertEqual(breakdown.convenience_fee, Decimal('20.00'))
        self.assertEqual(breakdown.discount_amount, Decimal('0.00'))
        self.assertIsNone(breakdown.coupon_code)
        self.assertEqual(breakdown.total_amount, Decimal('1070.00'))

    def test_qualifying_coupon_applies_ten_percent(self):
        breakdown = self.service.compute_breakdown(Decimal('500'), 2, 'first10')

        self.assertEqual(breakdown.discount_amount, Decimal('100.00'))
        self.assertEqual(breakdown.coupon_code, 'FIRST10')
        self.assertEqual(breakdown.total_amount, Decimal('970.00'))

    def test_coupon_below_min_fare_is_not_applied(self):
        breakdown = self.service.compute_breakdown(Decimal('200'), 2, 'FIRST10')

        self.assertEqual(breakdown.discount_amount, Decimal('0.00'))
        self.assertIsNone(breakdown.coupon_code)

    def test_min_fare_is_checked_on_aggregate_fare(self):
        breakdown = self.service.compute_breakdown(Decimal('250'), 2, 'FIRST10')

        self.assertEqual(breakdown.fare_amount, Decimal('500.00'))
        self.assertEqual(breakdown.coupon_code, 'FIRST10')
        self.assertEqual(breakdown.discount_amount, Decimal('50.00'))

    def test_unknown_coupon_is_reported_as_not_applied(self):
        breakdown = self.service.compute_breakdown(Decimal('500'), 2, 'SUMMER50')

        self.assertIsNone(breakdown.coupon_code)
        self.assertEqual(breakdown.total_amount, Decimal('1070.00'))

    def test_discount_is_capped(self):
        breakdown = self.service.compute_breakdown(Decimal('1000'), 2, 'FIRST10')

        self.assertEqual(breakdown.discount_amount, Decimal('150.00'))

    def test_convenience_fee_is_clamped(self):
        low = self.service.compute_breakdown(Decimal('100'), 1)
        high = self.service.compute_breakdown(Decimal('2500'), 2)

        self.assertEqual(low.convenience_fee, Decimal('10.00'))
        self.assertEqual(high.convenience_fee, Decimal('40.00'))

    def test_rounding_is_half_up_per_step(self):
        breakdown = self.service.compute_breakdown(Decimal('333.33'), 1)

        self.assertEqual(breakdown.gst_amount, Decimal('16.67'))
        self.assertEqual(breakdown.convenience_fee, Decimal('10.00'))
        self.assertEqual(breakdown.total_amount, Decimal('360.00'))

    def test_total_matches_components_and_is_deterministic(self):
        for base, seats, coupon in [('499.99', 3, 'FIRST10'), ('120.50', 7, None), ('75.25', 1, 'first10')]:
            first = self.service.compute_breakdown(Decimal(base), seats, coupon)
            second = compute_breakdown(Decimal(base), seats, coupon)

            self.assertEqual(first, second)
            self.assertEqual(
                first.total_amount,
                first.fare_amount + first.gst_amount + first.convenience_fee - first.discount_amount,
            )

    def test_invalid_inputs_are_rejected(self):
        with self.assertRaises(ValueError):
            self.service.compute_breakdown(Decimal('0'), 1)
        with self.assertRaises(ValueError):
            self.service.compute_breakdown(Decimal('500'), 0)
