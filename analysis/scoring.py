# analysis/scoring.py
from typing import Dict, Iterable, List

from analysis.models import ArbitrageOpportunity, SignalInput, TechnicalAnalysis, TradingSignal, YieldOpportunity
from constants import (
    ACTION_THRESHOLD,
    ARBITRAGE_BASE_RISK,
    ARBITRAGE_EXECUTION_RISK,
    ARBITRAGE_MAX_LIQUIDITY_RISK,
    HIGH_CONFIDENCE_THRESHOLD,
    LIQUIDITY_NORMALIZER,
    MOMENTUM_SIGNAL_CONFIDENCE,
    RISK_TOLERANCE_MULTIPLIERS,
    SIGNAL_WEIGHTS,
    UNCERTAIN_HOLD_CONFIDENCE,
    VOLUME_NORMALIZER,
    YIELD_RISK_PENALTY,
)


def calculate_signal_score(signal_input: SignalInput, weights: Dict[str, float] = SIGNAL_WEIGHTS) -> float:
    """
    Combines normalised market factors into a single score.

    Args:
        signal_input (SignalInput): Price change, volume, liquidity and sentiment for a token.
        weights (dict): Weight per factor. The 'momentum' entry is carried in the table but
                        not applied; price change already feeds the 'price' factor.

    Returns:
        The weighted score clamped to [-1, 1].
    """
    # 1. Price momentum, unbounded and usually small.
    score = (signal_input.price_change_24h / 100) * weights['price']

    # 2. Volume confirmation, saturates at 1M.
    score += min(signal_input.volume_24h / VOLUME_NORMALIZER, 1.0) * weights['volume']

    # 3. Sentiment is expected in [-1, 1] already.
    score += signal_input.sentiment * weights['sentiment']

    # 4. Liquidity, saturates at 10M.
    score += min(signal_input.liquidity / LIQUIDITY_NORMALIZER, 1.0) * weights['liquidity']

    return max(-1.0, min(1.0, score))


def determine_action(score: float) -> str:
    if score > ACTION_THRESHOLD:
        return 'buy'
    if score < -ACTION_THRESHOLD:
        return 'sell'
    return 'hold'


def generate_reasoning(signal_input: SignalInput, action: str) -> str:
    factors: List[str] = []

    if signal_input.price_change_24h > 0:
        factors.append(f"Price up {signal_input.price_change_24h:.2f}%")
    elif signal_input.price_change_24h < 0:
        factors.append(f"Price down {abs(signal_input.price_change_24h):.2f}%")

    if signal_input.volume_24h > VOLUME_NORMALIZER:
        factors.append("High volume")

    if signal_input.sentiment > 0.5:
        factors.append("Positive sentiment")
    elif signal_input.sentiment < -0.5:
        factors.append("Negative sentiment")

    return f"{action.upper()}: {', '.join(factors)}"


def generate_trading_signals(signal_input: SignalInput) -> List[TradingSignal]:
    """
    Produces the primary signal for a token, plus a 'hold' signal when confidence is moderate.

    A score strictly between 0.3 and 0.7 in magnitude surfaces the ambiguity as a second,
    fixed-confidence hold instead of committing to a single action.
    """
    score = calculate_signal_score(signal_input)
    action = determine_action(score)
    confidence = abs(score)

    primary = TradingSignal(
        action=action,
        token=signal_input.token,
        confidence=confidence,
        price=signal_input.price,
        reasoning=generate_reasoning(signal_input, action),
    )
    signals = [primary]

    if ACTION_THRESHOLD < confidence < HIGH_CONFIDENCE_THRESHOLD:
        signals.append(TradingSignal(
            action='hold',
            token=primary.token,
            confidence=UNCERTAIN_HOLD_CONFIDENCE,
            price=primary.price,
            reasoning="Market conditions are unclear, holding recommended",
        ))

    return signals


def assess_arbitrage_risk(price_diff: float) -> float:
    """Risk on a 0-1 scale, lower is better. A wide gap hints at thin liquidity and slippage."""
    liquidity_risk = min(price_diff / 10, ARBITRAGE_MAX_LIQUIDITY_RISK)
    return min(ARBITRAGE_BASE_RISK + liquidity_risk + ARBITRAGE_EXECUTION_RISK, 1.0)


def rank_yield_opportunities(opportunities: Iterable[YieldOpportunity], risk_tolerance: str) -> List[YieldOpportunity]:
    """Orders opportunities by risk-adjusted return, best first."""
    multiplier = RISK_TOLERANCE_MULTIPLIERS[risk_tolerance]
    return sorted(
        opportunities,
        key=lambda opp: (opp.apy * multiplier) - (opp.risk * YIELD_RISK_PENALTY),
        reverse=True,
    )


def signals_from_arbitrage(opportunities: List[ArbitrageOpportunity]) -> List[TradingSignal]:
    return [
        TradingSignal(
            action='buy',
            token=opp.token,
            confidence=1 - opp.risk,
            price=0.0,
            reasoning=f"Arbitrage opportunity: {opp.price_diff:.2f} price difference between {opp.dex_a} and {opp.dex_b}",
        )
        for opp in opportunities[:5]
    ]


def signals_from_yield(opportunities: List[YieldOpportunity]) -> List[TradingSignal]:
    return [
        TradingSignal(
            action='buy',
            token=opp.token,
            confidence=min(opp.apy / 20, 1.0),
            price=0.0,
            reasoning=f"Yield farming: {opp.protocol} offers {opp.apy:.2f}% APY with estimated return of {opp.estimated_return:.4f}",
        )
        for opp in opportunities[:3]
    ]


def momentum_signals(token: str, current_price: float) -> List[TradingSignal]:
    # Deliberately minimal: no live indicators are consulted.
    return [TradingSignal(
        action='buy',
        token=token,
        confidence=MOMENTUM_SIGNAL_CONFIDENCE,
        price=current_price,
        reasoning="Momentum indicators suggest upward trend",
    )]


def analyze_technical_indicators(
    current_price: float, volume: float, price_change: float, timeframe: str = '1d'
) -> TechnicalAnalysis:
    """Derives support/resistance bands and a coarse trend from the last 24h move, labelled with the requested timeframe."""
    band = abs(price_change) / 100
    support = current_price * (1 - band)
    resistance = current_price * (1 + band)

    trend = 'neutral'
    if price_change > 2 and volume > 0:
        trend = 'bullish'
    elif price_change < -2:
        trend = 'bearish'

    if trend == 'bullish':
        recommendations = ["Consider entry on pullbacks", "Set stop-loss below support level"]
    elif trend == 'bearish':
        recommendations = ["Consider exiting long positions", "Wait for confirmation before entering"]
    else:
        recommendations = ["Market is consolidating, wait for breakout"]

    return TechnicalAnalysis(
        support=support,
        resistance=resistance,
        trend=trend,
        recommendations=recommendations,
        timeframe=timeframe,
    )
