from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth.models import User
from django.db import OperationalError
from django.test import TestCase

from .models import Wallet, WalletTransaction
from .services import WalletService, InsufficientFundsError


class WalletServiceTest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user('walletuser', password='pass1234')
        self.wallet = Wallet.objects.create(user=self.user, balance=Decimal('300.00'))
        self.service = WalletService()

    def test_debit_never_goes_negative(self):
        with self.assertRaises(InsufficientFundsError):
            self.service.debit(self.user.id, Decimal('300.01'))

        self.assertEqual(self.service.get_balance(self.user.id), Decimal('300.00'))
        self.assertFalse(WalletTransaction.objects.exists())

    def test_debit_records_ledger_row(self):
        balance = self.service.debit(self.user.id, '120.50', reference_id='FT123', title='booking payment')

        self.assertEqual(balance, Decimal('179.50'))
        entry = WalletTransaction.objects.get()
        self.assertEqual(entry.transaction_type, WalletTransaction.DEBIT)
        self.assertEqual(entry.amount, Decimal('120.50'))
        self.assertEqual(entry.reference_id, 'FT123')

    def test_debit_up_to_clamps_to_balance(self):
        debited, balance = self.service.debit_up_to(self.user.id, Decimal('1070.00'))

        self.assertEqual(debited, Decimal('300.00'))
        self.assertEqual(balance, Decimal('0.00'))

        debited, balance = self.service.debit_up_to(self.user.id, Decimal('10.00'))
        self.assertEqual(debited, Decimal('0.00'))

    def test_debit_up_to_retries_when_balance_shrinks(self):
        original = self.service._read_balance
        reads = []

        def racing_read(user_id):
            balance = original(user_id)
            if not reads:
                # a concurrent debit lands after the first read
                Wallet.objects.filter(user_id=user_id).update(balance=Decimal('100.00'))
            reads.append(balance)
            return balance

        with patch.object(self.service, '_read_balance', side_effect=racing_read):
            debited, balance = self.service.debit_up_to(self.user.id, Decimal('250.00'))

        self.assertEqual(debited, Decimal('100.00'))
        self.assertEqual(balance, Decimal('0.00'))

    def test_credit_creates_missing_wallet(self):
        other = User.objects.create_user('newcomer', password='pass1234')

        balance = self.service.credit(other.id, Decimal('80.00'), reference_id='FT999')

        self.assertEqual(balance, Decimal('80.00'))
        self.assertEqual(Wallet.objects.get(user=other).balance, Decimal('80.00'))
        self.assertEqual(WalletTransaction.objects.get().transaction_type, WalletTransaction.CREDIT)

    def test_negative_amount_rejected(self):
        with self.assertRaises(ValueError):
            self.service.credit(self.user.id, Decimal('-1'))


@patch('travels_main_app.utils.persistence.time.sleep')
class WalletReplayTest(TestCase):
    """A movement whose commit was not acknowledged is retried without moving money twice"""

    def setUp(self):
        self.user = User.objects.create_user('replayuser', password='pass1234')
        Wallet.objects.create(user=self.user, balance=Decimal('500.00'))
        self.service = WalletService()

    def _commit_then_fail(self):
        original = self.service._apply
        calls = []

        def flaky_apply(*args):
            result = original(*args)
            if not calls:
                calls.append(result)
                raise OperationalError('server closed the connection unexpectedly')
            return original(*args)
        return flaky_apply

    def test_credit_lands_once(self, _sleep):
        with patch.object(self.service, '_apply', side_effect=self._commit_then_fail()):
            balance = self.service.credit(self.user.id, Decimal('100.00'), reference_id='FT1')

        self.assertEqual(balance, Decimal('600.00'))
        self.assertEqual(self.service.get_balance(self.user.id), Decimal('600.00'))
        self.assertEqual(WalletTransaction.objects.count(), 1)

    def test_debit_lands_once(self, _sleep):
        with patch.object(self.service, '_apply', side_effect=self._commit_then_fail()):
            balance = self.service.debit(self.user.id, Decimal('200.00'), reference_id='FT2')

        self.assertEqual(balance, Decimal('300.00'))
        self.assertEqual(WalletTransaction.objects.get().transaction_type, WalletTransaction.DEBIT)

    def test_same_idempotency_key_applies_once(self, _sleep):
        self.service.credit(self.user.id, Decimal('50.00'), reference_id='FT3', idempotency_key='FT3:refund')
        balance = self.service.credit(self.user.id, Decimal('50.00'), reference_id='FT3', idempotency_key='FT3:refund')

        self.assertEqual(balance, Decimal('550.00'))
        self.assertEqual(WalletTransaction.objects.filter(idempotency_key='FT3:refund').count(), 1)
