"""Tests for refund tiers"""

from datetime import datetime, timedelta, timezone

from django.test import SimpleTestCase

from ..services.refund_policy import refund_percent_for


class RefundPolicyTest(SimpleTestCase):
    def setUp(self):
        self.now = datetime(2030, 1, 10, 12, 0, tzinfo=timezone.utc)

    def test_tiers(self):
        cases = [
            (timedelta(hours=48), 80),
            (timedelta(hours=12), 50),
            (timedelta(hours=2), 0),
            (timedelta(hours=-3), 0),
        ]
        for ahead, expected in cases:
            self.assertEqual(refund_percent_for(self.now + ahead, self.now), expected)

    def test_boundaries(self):
        self.assertEqual(refund_percent_for(self.now + timedelta(hours=24, seconds=1), self.now), 80)
        self.assertEqual(refund_percent_for(self.now + timedelta(hours=24), self.now), 50)
        self.assertEqual(refund_percent_for(self.now + timedelta(hours=6), self.now), 50)
        self.assertEqual(refund_percent_for(self.now + timedelta(hours=6) - timedelta(seconds=1), self.now), 0)
