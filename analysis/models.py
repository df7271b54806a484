#!/usr/bin/env python3
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

@dataclass(frozen=True)
class MarketSnapshot:
    """Market data for a single token. Superseded by the next fetch, never mutated."""
    token: str
    price: float
    volume_24h: float
    price_change_24h: float
    liquidity: float
    timestamp: float

@dataclass
class SignalInput:
    """Inputs consumed by the scoring engine."""
    price: float
    volume_24h: float
    price_change_24h: float
    liquidity: float
    sentiment: float
    token: str = ''

@dataclass
class TradingSignal:
    action: str  # 'buy', 'sell' or 'hold'
    token: str
    confidence: float
    price: float
    reasoning: str

@dataclass
class ArbitrageOpportunity:
    """A cross-venue price gap. Only valid at the instant it was computed."""
    token: str
    dex_a: str
    dex_b: str
    price_diff: float
    profit_estimate: float
    risk: float

@dataclass
class YieldOpportunity:
    protocol: str
    token: str
    apy: float
    tvl: float
    risk: float
    estimated_return: float

@dataclass
class ArbitrageExecutionResult:
    success: bool
    error: Optional[str] = None
    tx_hash_1: Optional[str] = None
    tx_hash_2: Optional[str] = None
    actual_profit: Optional[float] = None

@dataclass
class YieldExecutionResult:
    success: bool
    error: Optional[str] = None
    tx_hash: Optional[str] = None
    actual_return: Optional[float] = None

@dataclass
class TechnicalAnalysis:
    support: float
    resistance: float
    trend: str  # 'bullish', 'bearish' or 'neutral'
    recommendations: List[str]
    timeframe: str = '1d'

@dataclass
class TokenAnalysis:
    snapshot: MarketSnapshot
    sentiment: float
    signals: List[TradingSignal]

@dataclass
class MarketOverview:
    top_gainers: List[MarketSnapshot]
    top_losers: List[MarketSnapshot]
    highest_volume: List[MarketSnapshot]
    signals: List[TradingSignal]

@dataclass
class MarketTrend:
    token: str
    trend: str
    momentum: float
    price_change_24h: float
    source: str
    volume_change_24h: Optional[float] = None
    error: Optional[str] = None

@dataclass
class AggregatedData:
    token_metrics: Dict[str, Dict[str, float]]
    market_trends: List[MarketTrend]
    protocol_analytics: List[Dict[str, Any]]
    social_sentiment: Dict[str, float]
    onchain_metrics: Dict[str, Any] = field(default_factory=dict)
