#!/usr/bin/env python3
"""Aggregates prices, sentiment and trend data into summaries and markdown reports."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from analysis.models import AggregatedData, MarketTrend
from constants import PROTOCOL_ANALYTICS, TREND_THRESHOLD_PCT
from services.helius_client import HeliusClient
from services.oracle_client import OracleClient

logger = logging.getLogger(__name__)


def classify_trend(price_change_pct: float) -> str:
    if price_change_pct > TREND_THRESHOLD_PCT:
        return 'bullish'
    if price_change_pct < -TREND_THRESHOLD_PCT:
        return 'bearish'
    return 'neutral'


class DataAggregator:
    def __init__(self, oracle: OracleClient, onchain: Optional[HeliusClient] = None):
        self.oracle = oracle
        self.onchain = onchain

    async def aggregate_token_data(self, tokens: List[str]) -> AggregatedData:
        snapshots = await self.oracle.get_multiple_token_prices(tokens)

        social_sentiment: Dict[str, float] = {}
        for token in tokens:
            social_sentiment[token] = await self.oracle.get_sentiment(token)

        return AggregatedData(
            token_metrics={
                snapshot.token: {
                    'price': snapshot.price,
                    'volume24h': snapshot.volume_24h,
                    'priceChange24h': snapshot.price_change_24h,
                    'liquidity': snapshot.liquidity,
                }
                for snapshot in snapshots
            },
            market_trends=await self.get_market_trends(tokens),
            protocol_analytics=self.get_protocol_analytics(),
            social_sentiment=social_sentiment,
            onchain_metrics=await self.get_onchain_metrics(tokens),
        )

    async def get_market_trends(self, tokens: List[str]) -> List[MarketTrend]:
        """Trend per token from the Birdeye overview, falling back to the cached oracle snapshot."""
        trends: List[MarketTrend] = []
        for token in tokens:
            overview = await self.oracle.get_token_overview(token)
            if overview:
                try:
                    price_change = float(overview.get('priceChange24h') or 0.0)
                    volume_change = float(overview.get('volumeChange24h') or 0.0)
                except (TypeError, ValueError):
                    logger.warning("Malformed overview for %s, using oracle snapshot", token)
                else:
                    trends.append(MarketTrend(
                        token=token,
                        trend=classify_trend(price_change),
                        momentum=price_change / 100,
                        price_change_24h=price_change,
                        volume_change_24h=volume_change,
                        source='birdeye',
                    ))
                    continue

            snapshot = await self.oracle.get_token_price(token)
            trends.append(MarketTrend(
                token=token,
                trend=classify_trend(snapshot.price_change_24h),
                momentum=snapshot.price_change_24h / 100,
                price_change_24h=snapshot.price_change_24h,
                source='oracle',
            ))
        return trends

    @staticmethod
    def get_protocol_analytics() -> List[Dict[str, Any]]:
        return [dict(entry) for entry in PROTOCOL_ANALYTICS]

    async def get_onchain_metrics(self, tokens: List[str]) -> Dict[str, Any]:
        """Holder and supply data per mint from Helius, or the fallback when no key is set or metadata fails."""
        if self.onchain is None:
            return self._fallback_onchain_metrics(tokens)

        metadata = await self.onchain.get_token_metadata(tokens)
        if metadata is None:
            logger.warning("Helius metadata unavailable, using fallback on-chain metrics")
            return self._fallback_onchain_metrics(tokens)

        metrics: Dict[str, Any] = {}
        for token in tokens:
            token_metadata = next((m for m in metadata if isinstance(m, dict) and m.get('mint') == token), None)
            balances = await self.onchain.get_token_balances(token)
            if balances is None:
                metrics[token] = {'metadata': token_metadata}
                continue
            metrics[token] = {
                'metadata': token_metadata,
                'balanceInfo': balances,
                'holders': balances.get('holders') or 0,
                'supply': (token_metadata or {}).get('supply') or 0,
            }

        return {'tokens': metrics, 'timestamp': time.time(), 'source': 'helius'}

    @staticmethod
    def _fallback_onchain_metrics(tokens: List[str]) -> Dict[str, Any]:
        # Per-token holder and supply data is reported as unknown.
        return {
            'tokens': {token: {'mint': token, 'supply': 0, 'holders': 0, 'source': 'fallback'} for token in tokens},
            'timestamp': time.time(),
            'source': 'fallback',
        }

    async def generate_report(self, report_type: str, tokens: List[str]) -> str:
        data = await self.aggregate_token_data(tokens)

        lines = [
            f"# {report_type.capitalize()} Market Report",
            "",
            f"Generated: {datetime.now(timezone.utc).isoformat()}",
            "",
            "## Token Metrics",
        ]
        for token, metrics in data.token_metrics.items():
            change = metrics['priceChange24h']
            sentiment = data.social_sentiment.get(token)
            lines.extend([
                f"### {token}",
                f"- Price: ${metrics['price']}",
                f"- 24h Volume: ${metrics['volume24h']:,.0f}",
                f"- 24h Change: {'+' if change > 0 else ''}{change:.2f}%",
                f"- Sentiment: {f'{sentiment:.2f}' if sentiment is not None else 'N/A'}",
                "",
            ])

        lines.append("## Market Trends")
        for trend in data.market_trends:
            lines.append(f"- {trend.token}: {trend.trend} (momentum: {trend.momentum:.2f})")

        return "\n".join(lines) + "\n"
