"""Revenue recording and the reinvestment policy that spends it."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import replace
from typing import Optional

from agent.ledger import RevenueLedger
from agent.models import EarningsLedger, SubAgentRecord, SubAgentStatus
from constants import (
    DEFAULT_REINVESTMENT_THRESHOLD,
    MAIN_AGENT_ID,
    MAX_SUB_AGENTS,
    SPAWN_COST,
    SUB_AGENT_DEFAULT_ROLE,
    UPGRADE_COST,
    UPGRADE_MAX_SUB_AGENTS,
    UPGRADE_MIN_TOTAL_EARNINGS,
)
from services.payment_rail import PaymentRail, create_wallet

logger = logging.getLogger(__name__)

SPAWN = 'spawn'
UPGRADE = 'upgrade'


class RevenueManager:
    """
    Single owner of the revenue ledger and the sub-agent set.

    Every mutation runs under one asyncio lock, so payments recorded by service requests
    and checks made by the autonomous cycle never interleave mid-update.
    """

    def __init__(
        self,
        payment_rail: PaymentRail,
        agent_address: Optional[str] = None,
        reinvestment_threshold: float = DEFAULT_REINVESTMENT_THRESHOLD,
    ) -> None:
        self.payment_rail = payment_rail
        self.agent_address = agent_address
        self.reinvestment_threshold = reinvestment_threshold
        self._ledger = RevenueLedger()
        self._sub_agents: dict[str, SubAgentRecord] = {}
        self._lock = asyncio.Lock()

    async def record_payment(self, service_id: str, amount: float) -> None:
        async with self._lock:
            if not self._ledger.credit(service_id, amount):
                logger.warning("Ignoring non-positive payment of %s for service %s", amount, service_id)
                return

            logger.info("Recorded payment: %s for service %s", amount, service_id)
            logger.info("Total earnings: %s, Available: %s", self._ledger.total, self._ledger.available)

            if self._ledger.available >= self.reinvestment_threshold:
                await self._consider_reinvestment_locked()

    async def consider_reinvestment(self) -> Optional[str]:
        """Runs one reinvestment decision. Returns 'spawn', 'upgrade' or None when nothing was done."""
        async with self._lock:
            return await self._consider_reinvestment_locked()

    async def _consider_reinvestment_locked(self) -> Optional[str]:
        available = self._ledger.available
        if available < self.reinvestment_threshold:
            return None

        if available >= SPAWN_COST and len(self._sub_agents) < MAX_SUB_AGENTS:
            await self._spawn_sub_agent(SUB_AGENT_DEFAULT_ROLE, SPAWN_COST)
            self._ledger.debit_reinvestment(SPAWN_COST)
            return SPAWN

        if available >= UPGRADE_COST and self._should_upgrade():
            await self._upgrade_agent(UPGRADE_COST)
            self._ledger.debit_reinvestment(UPGRADE_COST)
            return UPGRADE

        return None

    def _should_upgrade(self) -> bool:
        return len(self._sub_agents) < UPGRADE_MAX_SUB_AGENTS or self._ledger.total > UPGRADE_MIN_TOTAL_EARNINGS

    async def _spawn_sub_agent(self, role: str, cost: float) -> SubAgentRecord:
        sub_agent_id = f"sub_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        wallet = create_wallet(self.payment_rail.network)
        funding_tx_hash = await self._fund_sub_agent_wallet(wallet.address, cost)

        sub_agent = SubAgentRecord(
            id=sub_agent_id,
            parent_id=MAIN_AGENT_ID,
            role=role,
            balance=cost,
            status=SubAgentStatus.ACTIVE,
            created_at=time.time(),
            wallet_address=wallet.address,
            funding_tx_hash=funding_tx_hash,
        )
        self._sub_agents[sub_agent_id] = sub_agent
        logger.info("Spawned sub-agent %s with role %s, wallet %s, funding %s", sub_agent_id, role, wallet.address, funding_tx_hash)
        return sub_agent

    async def _fund_sub_agent_wallet(self, to_address: str, amount: float) -> str:
        """Funds a new sub-agent. Any failure yields a placeholder reference instead of blocking the spawn."""
        try:
            if not self.agent_address:
                raise ValueError("Agent wallet address not configured")

            balance = await self.payment_rail.get_balance(self.agent_address)
            if balance < amount:
                raise ValueError(f"Insufficient balance to fund sub-agent. Required: {amount}, Available: {balance}")

            tx_hash = await self.payment_rail.transfer(self.agent_address, to_address, amount)
        except Exception as exc:
            placeholder = f"funding_tx_sim_{int(time.time() * 1000)}"
            logger.warning("Funding transfer to %s failed (%s); recorded placeholder %s", to_address, exc, placeholder)
            return placeholder

        logger.info("Funded sub-agent wallet %s with %s via transaction %s", to_address, amount, tx_hash)
        return tx_hash

    async def _upgrade_agent(self, cost: float) -> None:
        # Placeholder: the debit is the only effect.
        logger.info("Upgrading agent capabilities with %s funds", cost)

    def get_earnings(self) -> EarningsLedger:
        return self._ledger.snapshot()

    def get_sub_agents(self) -> list[SubAgentRecord]:
        return [replace(sub_agent) for sub_agent in self._sub_agents.values()]

    async def get_balance(self) -> float:
        if not self.agent_address:
            return 0.0
        return await self.payment_rail.get_balance(self.agent_address)
