"""Dataclasses describing the agent's revenue, sub-agents and paid services."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SubAgentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    UPGRADING = "upgrading"


@dataclass(slots=True)
class EarningsLedger:
    """Snapshot of the agent's earnings. `total == sum(by_service)`, `available == total - reinvested`."""
    total: float = 0.0
    by_service: dict[str, float] = field(default_factory=dict)
    reinvested: float = 0.0
    available: float = 0.0

    def copy(self) -> EarningsLedger:
        return EarningsLedger(
            total=self.total,
            by_service=dict(self.by_service),
            reinvested=self.reinvested,
            available=self.available,
        )


@dataclass(slots=True)
class SubAgentRecord:
    """A spawned child actor. Records are creation-only: status never changes after spawning."""
    id: str
    parent_id: str
    role: str
    balance: float
    status: SubAgentStatus
    created_at: float
    wallet_address: Optional[str] = None
    funding_tx_hash: Optional[str] = None


@dataclass(slots=True)
class ServiceConfig:
    id: str
    name: str
    type: str  # 'market-analysis', 'trading-strategy' or 'data-aggregation'
    price: float
    enabled: bool = True


@dataclass(slots=True)
class ServiceRequest:
    service_id: str
    user_id: str
    payment_amount: float
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class MarketAnalysisParams:
    token: Optional[str] = None
    tokens: list[str] = field(default_factory=list)
    technical_analysis: bool = False
    timeframe: str = "1d"


@dataclass(slots=True)
class TradingStrategyParams:
    strategy: str = "arbitrage"
    tokens: list[str] = field(default_factory=list)
    amount: float = 1.0
    risk_tolerance: str = "medium"
    token: str = ""
    current_price: float = 0.0


@dataclass(slots=True)
class DataAggregationParams:
    tokens: list[str] = field(default_factory=list)
    report: bool = False
    report_type: str = "daily"


ServiceParams = MarketAnalysisParams | TradingStrategyParams | DataAggregationParams


@dataclass(slots=True)
class ServiceResponse:
    result: Any
    transaction_hash: str
    service_id: str
    service_name: str
    price: float
    timestamp: float
    payment_mode: str
