"""
Wallet credits for ROI payouts and principal returns.

The accrual engine only ever calls `credit`; activation calls `debit`. Both run
inside the caller's transaction so a failure anywhere rolls the change back too.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from roi_backend.apps.investments.exceptions import (
    InsufficientBalance,
    InvalidPrincipal,
    WalletCreditFailed,
)
from roi_backend.apps.users.models import CURRENCY_CHOICES, Investor, Wallet

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = {code for code, _ in CURRENCY_CHOICES}


class WalletService:
    """Database-backed wallet, one balance per (investor, currency)."""

    def credit(
        self, user_id, currency: str, amount: Decimal, earnings: bool = True
    ) -> Wallet:
        """
        Add `amount` to the investor's wallet for `currency`.

        `earnings` marks ROI credits so they are tallied in `total_earnings`;
        principal returns pass False.
        Raises WalletCreditFailed when the credit lacks the context to be applied.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise WalletCreditFailed(f"Refusing non-positive credit of {amount}")
        if currency not in SUPPORTED_CURRENCIES:
            raise WalletCreditFailed(f"Unsupported currency: {currency}")

        user = Investor.objects.filter(pk=user_id, is_active=True).first()
        if user is None:
            raise WalletCreditFailed(f"No active investor with id {user_id}")

        with transaction.atomic():
            wallet, _ = Wallet.objects.select_for_update().get_or_create(
                user=user, currency=currency
            )
            wallet.balance += amount
            if earnings:
                wallet.total_earnings += amount
            wallet.last_credited_at = timezone.now()
            wallet.save(update_fields=["balance", "total_earnings", "last_credited_at"])

        logger.info(f"Credited {amount} {currency} to wallet of investor {user_id}")
        return wallet

    def debit(self, user_id, currency: str, amount: Decimal) -> Wallet:
        """
        Take `amount` out of the investor's wallet for `currency`.
        Raises InsufficientBalance when the wallet is missing or short.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise InvalidPrincipal(f"Refusing non-positive debit of {amount}")

        with transaction.atomic():
            wallet = (
                Wallet.objects.select_for_update()
                .filter(user_id=user_id, currency=currency)
                .first()
            )
            balance = wallet.balance if wallet is not None else Decimal("0")
            if balance < amount:
                raise InsufficientBalance(
                    f"Insufficient balance. Current balance: {balance} {currency.upper()}, "
                    f"Required: {amount} {currency.upper()}"
                )
            wallet.balance -= amount
            wallet.save(update_fields=["balance"])

        logger.info(f"Debited {amount} {currency} from wallet of investor {user_id}")
        return wallet
