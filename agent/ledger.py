"""In-memory revenue ledger. Lives for the process lifetime; never persisted."""
from __future__ import annotations

from agent.models import EarningsLedger


class RevenueLedger:
    """
    The only place earnings state changes.

    Payments credit `total`, the per-service bucket and `available`; reinvestment debits
    move funds from `available` to `reinvested`. Callers serialize access.
    """

    def __init__(self) -> None:
        self._earnings = EarningsLedger()

    @property
    def total(self) -> float:
        return self._earnings.total

    @property
    def available(self) -> float:
        return self._earnings.available

    @property
    def reinvested(self) -> float:
        return self._earnings.reinvested

    def credit(self, service_id: str, amount: float) -> bool:
        """Records a payment. Non-positive amounts are ignored and reported as False."""
        if amount <= 0:
            return False
        self._earnings.total += amount
        self._earnings.by_service[service_id] = self._earnings.by_service.get(service_id, 0.0) + amount
        self._earnings.available += amount
        return True

    def debit_reinvestment(self, amount: float) -> None:
        if amount <= 0:
            raise ValueError(f"Reinvestment debit must be positive, got {amount}")
        if amount > self._earnings.available:
            raise ValueError(
                f"Reinvestment debit {amount} exceeds available balance {self._earnings.available}"
            )
        self._earnings.available -= amount
        self._earnings.reinvested += amount

    def snapshot(self) -> EarningsLedger:
        return self._earnings.copy()
