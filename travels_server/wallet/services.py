"""Wallet ledger - atomic balance movements"""
import logging
import uuid
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F

from travels_main_app.utils.constants import BusinessRules
from travels_main_app.utils.money import to_money
from travels_main_app.utils.persistence import call_with_retry

from .models import Wallet, WalletTransaction

logger = logging.getLogger(__name__)


class InsufficientFundsError(Exception):
    """Raised when a debit would drive the balance negative"""
    pass


class WalletService:
    """
    Per-user balance used as partial payment and refund target.

    Every movement is a single conditional increment on the stored balance
    (UPDATE ... SET balance = balance +/- x), never a read-modify-write, so
    concurrent debits and credits for one user cannot lose updates.
    """

    def get_balance(self, user_id):
        balance = call_with_retry(self._read_balance, user_id)
        return balance if balance is not None else Decimal('0.00')

    def debit(self, user_id, amount, reference_id='unknown', title='booking payment', idempotency_key=None):
        """Debit amount; raises InsufficientFundsError instead of going negative"""
        amount = self._validate_amount(amount)
        if amount == 0:
            return self.get_balance(user_id)
        key = idempotency_key or uuid.uuid4().hex
        return call_with_retry(self._apply, user_id, -amount, reference_id, title, key)

    def debit_up_to(self, user_id, amount, reference_id='unknown', title='booking payment', idempotency_key=None):
        """
        Debit min(balance, amount).

        Returns (debited_amount, new_balance). A concurrent debit that shrinks
        the balance between the read and the conditional update just triggers
        another attempt against the fresh balance.
        """
        amount = self._validate_amount(amount)
        key = idempotency_key or uuid.uuid4().hex
        for _ in range(BusinessRules.WALLET_DEBIT_MAX_RETRIES):
            balance = self.get_balance(user_id)
            take = min(balance, amount)
            if take <= 0:
                return Decimal('0.00'), balance
            try:
                return take, self.debit(user_id, take, reference_id=reference_id, title=title, idempotency_key=key)
            except InsufficientFundsError:
                logger.info(f"[WALLET] balance changed under debit for user {user_id}, retrying")
        logger.warning(f"[WALLET] giving up wallet debit for user {user_id} after contention")
        return Decimal('0.00'), self.get_balance(user_id)

    def credit(self, user_id, amount, reference_id='unknown', title='refund', idempotency_key=None):
        amount = self._validate_amount(amount)
        call_with_retry(Wallet.objects.get_or_create, user_id=user_id)
        if amount == 0:
            return self.get_balance(user_id)
        key = idempotency_key or uuid.uuid4().hex
        return call_with_retry(self._apply, user_id, amount, reference_id, title, key)

    def _apply(self, user_id, delta, reference_id, title, idempotency_key):
        # Ledger row first: a replayed movement fails on idempotency_key before the balance moves
        try:
            with transaction.atomic():
                wallet_id = Wallet.objects.filter(user_id=user_id).values_list('id', flat=True).first()
                if wallet_id is None:
                    raise InsufficientFundsError(f"No wallet for user {user_id}")

                WalletTransaction.objects.create(
                    wallet_id=wallet_id,
                    transaction_type=WalletTransaction.CREDIT if delta > 0 else WalletTransaction.DEBIT,
                    amount=abs(delta),
                    title=title,
                    reference_id=reference_id,
                    idempotency_key=idempotency_key,
                )

                qs = Wallet.objects.filter(pk=wallet_id)
                if delta < 0:
                    qs = qs.filter(balance__gte=-delta)
                if not qs.update(balance=F('balance') + delta):
                    raise InsufficientFundsError(f"Insufficient wallet balance for user {user_id}")

                balance = Wallet.objects.filter(pk=wallet_id).values_list('balance', flat=True).get()
        except IntegrityError:
            if not WalletTransaction.objects.filter(idempotency_key=idempotency_key).exists():
                raise
            logger.info(f"[WALLET] {idempotency_key} already applied for user {user_id}")
            return self.get_balance(user_id)

        logger.info(f"[WALLET] user {user_id} {'credit' if delta > 0 else 'debit'} {abs(delta)} "
                    f"ref={reference_id} balance={balance}")
        return balance

    def _read_balance(self, user_id):
        return Wallet.objects.filter(user_id=user_id).values_list('balance', flat=True).first()

    @staticmethod
    def _validate_amount(amount):
        amount = to_money(amount)
        if amount < 0:
            raise ValueError('amount must be >= 0')
        return amount
