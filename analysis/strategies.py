#!/usr/bin/env python3
import logging
import random
import time
from typing import Dict, List, Optional

from agent.models import TradingStrategyParams
from analysis import scoring
from analysis.models import (
    ArbitrageExecutionResult,
    ArbitrageOpportunity,
    TradingSignal,
    YieldExecutionResult,
    YieldOpportunity,
)
from config import AppConfig
from constants import (
    ARBITRAGE_EXECUTION_MIN_SPREAD_PCT,
    ARBITRAGE_FEE_FACTOR,
    ARBITRAGE_MAX_SLIPPAGE,
    ARBITRAGE_MIN_SPREAD_PCT,
    ARBITRAGE_SWAP_FEE,
    C_YELLOW,
    C_RESET,
    DEFAULT_TVL_RANGE,
    PROTOCOL_TVL_RANGES,
    RISK_TOLERANCE_THRESHOLDS,
    YIELD_PROTOCOLS,
    YIELD_TOKEN,
)
from services.defillama_client import DefiLlamaClient
from services.oracle_client import OracleClient
from services.swap_executor import SwapExecutor

logger = logging.getLogger(__name__)


def spread_pct(price_a: float, price_b: float) -> float:
    """Absolute price gap as a percentage of the two prices' midpoint."""
    return abs(price_a - price_b) / ((price_a + price_b) / 2) * 100


def matches_risk_tolerance(risk: float, risk_tolerance: str) -> bool:
    return risk <= RISK_TOLERANCE_THRESHOLDS[risk_tolerance]


class StrategyEvaluator:
    def __init__(
        self,
        config: AppConfig,
        oracle: OracleClient,
        swap_executor: SwapExecutor,
        analytics: Optional[DefiLlamaClient] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.oracle = oracle
        self.swap_executor = swap_executor
        self.analytics = analytics
        self._rng = rng or random.Random()

    async def find_arbitrage_opportunities(self, tokens: List[str]) -> List[ArbitrageOpportunity]:
        """Compares every pair of venue prices per token and returns the gaps worth trading, most profitable first."""
        opportunities: List[ArbitrageOpportunity] = []

        for token in tokens:
            prices: Dict[str, float] = {}
            for dex in self.config.dex_venues:
                price = await self.oracle.get_dex_price(token, dex)
                if price > 0:
                    prices[dex] = price

            venues = list(prices)
            for i in range(len(venues)):
                for j in range(i + 1, len(venues)):
                    dex_a = venues[i]
                    dex_b = venues[j]
                    price_a = prices[dex_a]
                    price_b = prices[dex_b]

                    if spread_pct(price_a, price_b) <= ARBITRAGE_MIN_SPREAD_PCT:
                        continue

                    price_diff = abs(price_a - price_b)
                    opportunities.append(ArbitrageOpportunity(
                        token=token,
                        dex_a=dex_a,
                        dex_b=dex_b,
                        price_diff=price_diff,
                        profit_estimate=price_diff * ARBITRAGE_FEE_FACTOR,
                        risk=scoring.assess_arbitrage_risk(price_diff),
                    ))

        return sorted(opportunities, key=lambda opp: opp.profit_estimate, reverse=True)

    async def execute_arbitrage(self, opportunity: ArbitrageOpportunity, amount: float) -> ArbitrageExecutionResult:
        """
        Re-verifies an opportunity against live prices and runs both swap legs.

        Failures are returned, not raised. When the second leg fails the first leg's
        reference is reported so the position can be unwound by hand.
        """
        try:
            price_a = await self.oracle.get_dex_price(opportunity.token, opportunity.dex_a)
            price_b = await self.oracle.get_dex_price(opportunity.token, opportunity.dex_b)

            if price_a == 0 or price_b == 0:
                return ArbitrageExecutionResult(success=False, error="Price data unavailable for one or both DEXs")

            if spread_pct(price_a, price_b) < ARBITRAGE_EXECUTION_MIN_SPREAD_PCT:
                return ArbitrageExecutionResult(success=False, error="Arbitrage opportunity no longer viable")

            if price_a < price_b:
                buy_dex, sell_dex, buy_price, sell_price = opportunity.dex_a, opportunity.dex_b, price_a, price_b
            else:
                buy_dex, sell_dex, buy_price, sell_price = opportunity.dex_b, opportunity.dex_a, price_b, price_a

            safe_amount = amount * (1 - ARBITRAGE_MAX_SLIPPAGE)
            tokens_received = safe_amount / buy_price
            tokens_to_sell = tokens_received * (1 - ARBITRAGE_SWAP_FEE)
            net_profit = tokens_to_sell * sell_price - amount

            if net_profit <= 0:
                return ArbitrageExecutionResult(success=False, error="Arbitrage would result in loss after fees")

            logger.info("Executing arbitrage: buy %s worth on %s, sell on %s", safe_amount, buy_dex, sell_dex)

            tx_hash_1 = await self.swap_executor.execute_swap(opportunity.token, safe_amount, buy_dex, 'buy')
            if not tx_hash_1:
                return ArbitrageExecutionResult(success=False, error="First swap failed")

            tx_hash_2 = await self.swap_executor.execute_swap(opportunity.token, tokens_to_sell, sell_dex, 'sell')
            if not tx_hash_2:
                logger.error("Second swap failed after first leg %s; manual unwind required", tx_hash_1)
                return ArbitrageExecutionResult(success=False, error="Second swap failed", tx_hash_1=tx_hash_1)

            return ArbitrageExecutionResult(
                success=True,
                tx_hash_1=tx_hash_1,
                tx_hash_2=tx_hash_2,
                actual_profit=net_profit,
            )
        except Exception as exc:
            logger.error("Arbitrage execution failed: %s", exc)
            return ArbitrageExecutionResult(success=False, error=str(exc))

    async def optimize_yield_farming(self, amount: float, risk_tolerance: str) -> List[YieldOpportunity]:
        """Builds yield opportunities within the risk tolerance and ranks them by risk-adjusted APY."""
        if risk_tolerance not in RISK_TOLERANCE_THRESHOLDS:
            raise ValueError(f"Unknown risk tolerance: {risk_tolerance}")

        opportunities: List[YieldOpportunity] = []
        for protocol in YIELD_PROTOCOLS:
            if not matches_risk_tolerance(protocol['risk'], risk_tolerance):
                continue

            protocol_data: Dict[str, Optional[float]] = {}
            if self.analytics is not None:
                try:
                    protocol_data = await self.analytics.fetch_protocol_data(protocol['slug'], protocol['chain'])
                except Exception as e:
                    print(f"{C_YELLOW}Failed to fetch data for {protocol['name']}, using defaults: {e}{C_RESET}")

            apy = protocol_data.get('apy') or protocol['defaultAPY']
            tvl = protocol_data.get('tvl') or self._estimate_tvl(protocol['name'])

            opportunities.append(YieldOpportunity(
                protocol=protocol['name'],
                token=YIELD_TOKEN,
                apy=apy,
                tvl=tvl,
                risk=protocol['risk'],
                estimated_return=amount * apy / 100,
            ))

        return scoring.rank_yield_opportunities(opportunities, risk_tolerance)

    def _estimate_tvl(self, protocol_name: str) -> float:
        # Best-effort estimate inside the protocol's plausible range.
        low, high = PROTOCOL_TVL_RANGES.get(protocol_name, DEFAULT_TVL_RANGE)
        return self._rng.uniform(low, high)

    async def execute_yield_farming(self, opportunity: YieldOpportunity, amount: float) -> YieldExecutionResult:
        logger.info("Executing yield farming: %s into %s", amount, opportunity.protocol)
        if self.config.payment_mode == 'simulated':
            slug = opportunity.protocol.lower().replace(' ', '_')
            return YieldExecutionResult(
                success=True,
                tx_hash=f"yield_{slug}_{int(time.time() * 1000)}",
                actual_return=amount * opportunity.apy / 100,
            )
        return YieldExecutionResult(
            success=False,
            error="On-chain yield farming requires protocol-specific contract integration",
        )

    async def execute_strategy(self, strategy: str, params: TradingStrategyParams) -> List[TradingSignal]:
        if strategy == 'arbitrage':
            opportunities = await self.find_arbitrage_opportunities(params.tokens)
            return scoring.signals_from_arbitrage(opportunities)
        if strategy == 'yield-farming':
            yield_opportunities = await self.optimize_yield_farming(params.amount, params.risk_tolerance)
            return scoring.signals_from_yield(yield_opportunities)
        if strategy == 'momentum':
            return scoring.momentum_signals(params.token, params.current_price)
        return []
