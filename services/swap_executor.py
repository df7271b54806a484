"""Swap-leg execution for arbitrage between DEX venues."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from services.payment_rail import simulated_reference


@dataclass(slots=True)
class SwapLeg:
    token: str
    amount: float
    dex: str
    direction: str  # 'buy' or 'sell'


class SwapExecutor:
    """
    Executes arbitrage legs in simulated mode only.

    On-chain routing through venue swap APIs is not supported: in 'onchain' mode every
    leg is reported as failed so the arbitrage is abandoned before any funds move.
    """

    def __init__(self, payment_mode: str = 'simulated') -> None:
        self.payment_mode = payment_mode
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO)

    async def execute_swap(self, token: str, amount: float, dex: str, direction: str) -> Optional[str]:
        """Executes one leg and returns its reference, or None when the leg failed."""
        leg = SwapLeg(token=token, amount=amount, dex=dex, direction=direction)
        return self._execute_leg(leg)

    def _execute_leg(self, leg: SwapLeg) -> Optional[str]:
        verb = 'Buying' if leg.direction == 'buy' else 'Selling'
        if self.payment_mode == 'simulated':
            self.logger.info("[SIMULATED] %s %s of %s on %s", verb, leg.amount, leg.token, leg.dex)
            return simulated_reference(f"swap_{leg.dex}")

        self.logger.warning("[ONCHAIN] %s %s on %s is not supported; leg not executed", verb, leg.amount, leg.dex)
        return None
