#!/usr/bin/env python3
from typing import List

from analysis import scoring
from analysis.models import MarketOverview, SignalInput, TechnicalAnalysis, TokenAnalysis, TradingSignal
from services.oracle_client import OracleClient


class MarketAnalyzer:
    """Token-level analysis built on oracle snapshots and the scoring engine."""

    def __init__(self, oracle: OracleClient):
        self.oracle = oracle

    async def analyze_token(self, token: str) -> TokenAnalysis:
        snapshot = await self.oracle.get_token_price(token)
        sentiment = await self.oracle.get_sentiment(token)
        signals = scoring.generate_trading_signals(SignalInput(
            price=snapshot.price,
            volume_24h=snapshot.volume_24h,
            price_change_24h=snapshot.price_change_24h,
            liquidity=snapshot.liquidity,
            sentiment=sentiment,
            token=token,
        ))
        return TokenAnalysis(snapshot=snapshot, sentiment=sentiment, signals=signals)

    async def get_market_overview(self, tokens: List[str]) -> MarketOverview:
        """Ranks tokens by 24h move and volume, with signals for the five strongest gainers."""
        snapshots = await self.oracle.get_multiple_token_prices(tokens)

        by_change = sorted(snapshots, key=lambda s: s.price_change_24h, reverse=True)
        by_volume = sorted(snapshots, key=lambda s: s.volume_24h, reverse=True)

        signals: List[TradingSignal] = []
        for snapshot in by_change[:5]:
            analysis = await self.analyze_token(snapshot.token)
            signals.extend(analysis.signals)

        return MarketOverview(
            top_gainers=by_change[:10],
            top_losers=list(reversed(by_change[-10:])),
            highest_volume=by_volume[:10],
            signals=signals,
        )

    async def generate_technical_analysis(self, token: str, timeframe: str = '1d') -> TechnicalAnalysis:
        snapshot = await self.oracle.get_token_price(token)
        return scoring.analyze_technical_indicators(
            current_price=snapshot.price,
            volume=snapshot.volume_24h,
            price_change=snapshot.price_change_24h,
            timeframe=timeframe,
        )
