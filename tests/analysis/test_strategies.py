import random

import pytest
from unittest.mock import AsyncMock, MagicMock

from agent.models import TradingStrategyParams
from analysis.models import ArbitrageOpportunity, YieldOpportunity
from analysis.strategies import StrategyEvaluator, spread_pct
from constants import PROTOCOL_TVL_RANGES


class FakeOracle:
    def __init__(self, prices):
        self.prices = prices

    async def get_dex_price(self, token, dex):
        return self.prices.get(dex, 0.0)


@pytest.fixture
def swap_executor():
    executor = MagicMock()
    executor.execute_swap = AsyncMock(side_effect=['tx_buy', 'tx_sell'])
    return executor


def _evaluator(config, prices, swap_executor=None, analytics=None, venues=None):
    if venues is not None:
        config = config._replace(dex_venues=venues)
    return StrategyEvaluator(
        config,
        FakeOracle(prices),
        swap_executor or MagicMock(),
        analytics=analytics,
        rng=random.Random(42),
    )


def _opportunity():
    return ArbitrageOpportunity(token='SOL_MINT', dex_a='jupiter', dex_b='raydium', price_diff=1.0, profit_estimate=0.997, risk=0.6)


def test_spread_pct_uses_midpoint():
    assert spread_pct(100.0, 100.6) == pytest.approx(0.6 / 100.3 * 100)


@pytest.mark.asyncio
async def test_small_spread_is_excluded(mock_config):
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 100.3}, venues=['jupiter', 'raydium'])

    assert await evaluator.find_arbitrage_opportunities(['SOL_MINT']) == []


@pytest.mark.asyncio
async def test_spread_above_half_percent_is_included(mock_config):
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 100.6}, venues=['jupiter', 'raydium'])

    opportunities = await evaluator.find_arbitrage_opportunities(['SOL_MINT'])

    assert len(opportunities) == 1
    opp = opportunities[0]
    assert (opp.dex_a, opp.dex_b) == ('jupiter', 'raydium')
    assert opp.price_diff == pytest.approx(0.6)
    assert opp.profit_estimate == pytest.approx(0.6 * 0.997)
    assert opp.risk == pytest.approx(0.56)


@pytest.mark.asyncio
async def test_opportunities_sorted_by_profit_with_stable_ties(mock_config):
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 101.0, 'orca': 102.0})

    opportunities = await evaluator.find_arbitrage_opportunities(['SOL_MINT'])

    assert [(o.dex_a, o.dex_b) for o in opportunities] == [
        ('jupiter', 'orca'),
        ('jupiter', 'raydium'),
        ('raydium', 'orca'),
    ]


@pytest.mark.asyncio
async def test_zero_prices_are_dropped(mock_config):
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 0.0, 'orca': 102.0})

    opportunities = await evaluator.find_arbitrage_opportunities(['SOL_MINT'])

    assert [(o.dex_a, o.dex_b) for o in opportunities] == [('jupiter', 'orca')]


@pytest.mark.asyncio
async def test_execute_arbitrage_rejects_collapsed_spread_without_swapping(mock_config, swap_executor):
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 100.2}, swap_executor)

    result = await evaluator.execute_arbitrage(_opportunity(), 1.0)

    assert result.success is False
    assert result.error == "Arbitrage opportunity no longer viable"
    swap_executor.execute_swap.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_arbitrage_rejects_missing_price(mock_config, swap_executor):
    evaluator = _evaluator(mock_config, {'jupiter': 100.0}, swap_executor)

    result = await evaluator.execute_arbitrage(_opportunity(), 1.0)

    assert result.success is False
    assert result.error == "Price data unavailable for one or both DEXs"
    swap_executor.execute_swap.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_arbitrage_rejects_loss_after_fees(mock_config, swap_executor):
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 100.5}, swap_executor)

    result = await evaluator.execute_arbitrage(_opportunity(), 1.0)

    assert result.success is False
    assert result.error == "Arbitrage would result in loss after fees"
    swap_executor.execute_swap.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_arbitrage_buys_cheaper_venue_first(mock_config, swap_executor):
    evaluator = _evaluator(mock_config, {'jupiter': 101.0, 'raydium': 100.0}, swap_executor)

    result = await evaluator.execute_arbitrage(_opportunity(), 1.0)

    tokens_to_sell = 0.995 / 100.0 * 0.997
    assert result.success is True
    assert (result.tx_hash_1, result.tx_hash_2) == ('tx_buy', 'tx_sell')
    assert result.actual_profit == pytest.approx(tokens_to_sell * 101.0 - 1.0)

    first_call, second_call = swap_executor.execute_swap.await_args_list
    assert first_call.args == ('SOL_MINT', pytest.approx(0.995), 'raydium', 'buy')
    assert second_call.args == ('SOL_MINT', pytest.approx(tokens_to_sell), 'jupiter', 'sell')


@pytest.mark.asyncio
async def test_second_leg_failure_reports_first_leg(mock_config):
    executor = MagicMock()
    executor.execute_swap = AsyncMock(side_effect=['tx_buy', None])
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 101.0}, executor)

    result = await evaluator.execute_arbitrage(_opportunity(), 1.0)

    assert result.success is False
    assert result.error == "Second swap failed"
    assert result.tx_hash_1 == 'tx_buy'
    assert result.tx_hash_2 is None


@pytest.mark.asyncio
async def test_first_leg_failure(mock_config):
    executor = MagicMock()
    executor.execute_swap = AsyncMock(return_value=None)
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 101.0}, executor)

    result = await evaluator.execute_arbitrage(_opportunity(), 1.0)

    assert result.success is False
    assert result.error == "First swap failed"
    executor.execute_swap.assert_awaited_once()


@pytest.mark.asyncio
async def test_yield_low_tolerance_filters_and_ranks(mock_config):
    evaluator = _evaluator(mock_config, {})

    opportunities = await evaluator.optimize_yield_farming(10.0, 'low')

    assert [o.protocol for o in opportunities] == ['Lido', 'Marinade Finance', 'Jito']
    lido = opportunities[0]
    assert lido.apy == 8.2
    assert lido.estimated_return == pytest.approx(0.82)
    low, high = PROTOCOL_TVL_RANGES['Lido']
    assert low <= lido.tvl <= high


@pytest.mark.asyncio
async def test_yield_high_tolerance_includes_every_protocol(mock_config):
    evaluator = _evaluator(mock_config, {})

    opportunities = await evaluator.optimize_yield_farming(1.0, 'high')

    assert len(opportunities) == 5


@pytest.mark.asyncio
async def test_yield_uses_analytics_data_when_available(mock_config):
    analytics = MagicMock()
    analytics.fetch_protocol_data = AsyncMock(return_value={'apy': 20.0, 'tvl': 123.0})
    evaluator = _evaluator(mock_config, {}, analytics=analytics)

    opportunities = await evaluator.optimize_yield_farming(1.0, 'low')

    assert all(o.apy == 20.0 and o.tvl == 123.0 for o in opportunities)
    analytics.fetch_protocol_data.assert_any_await('lido', 'solana')


@pytest.mark.asyncio
async def test_yield_falls_back_when_analytics_fails(mock_config):
    analytics = MagicMock()
    analytics.fetch_protocol_data = AsyncMock(side_effect=RuntimeError("boom"))
    evaluator = _evaluator(mock_config, {}, analytics=analytics)

    opportunities = await evaluator.optimize_yield_farming(1.0, 'low')

    assert {o.protocol: o.apy for o in opportunities} == {'Lido': 8.2, 'Marinade Finance': 7.5, 'Jito': 9.1}


@pytest.mark.asyncio
async def test_yield_rejects_unknown_tolerance(mock_config):
    evaluator = _evaluator(mock_config, {})

    with pytest.raises(ValueError):
        await evaluator.optimize_yield_farming(1.0, 'reckless')


@pytest.mark.asyncio
async def test_execute_yield_farming_simulated(mock_config):
    evaluator = _evaluator(mock_config, {})
    opportunity = YieldOpportunity(protocol='Marinade Finance', token='SOL', apy=7.5, tvl=1.0, risk=0.2, estimated_return=0.75)

    result = await evaluator.execute_yield_farming(opportunity, 10.0)

    assert result.success is True
    assert result.tx_hash.startswith('yield_marinade_finance_')
    assert result.actual_return == pytest.approx(0.75)


@pytest.mark.asyncio
async def test_execute_yield_farming_onchain_is_unsupported(mock_config):
    evaluator = _evaluator(mock_config._replace(payment_mode='onchain'), {})
    opportunity = YieldOpportunity(protocol='Lido', token='SOL', apy=8.2, tvl=1.0, risk=0.15, estimated_return=0.82)

    result = await evaluator.execute_yield_farming(opportunity, 10.0)

    assert result.success is False
    assert result.tx_hash is None


@pytest.mark.asyncio
async def test_execute_strategy_dispatch(mock_config):
    evaluator = _evaluator(mock_config, {'jupiter': 100.0, 'raydium': 101.0}, venues=['jupiter', 'raydium'])

    arbitrage = await evaluator.execute_strategy('arbitrage', TradingStrategyParams(tokens=['SOL_MINT']))
    yield_signals = await evaluator.execute_strategy('yield-farming', TradingStrategyParams(risk_tolerance='high'))
    momentum = await evaluator.execute_strategy('momentum', TradingStrategyParams(token='SOL_MINT', current_price=150.0))
    unknown = await evaluator.execute_strategy('grid', TradingStrategyParams())

    assert len(arbitrage) == 1
    assert len(yield_signals) == 3
    assert momentum[0].confidence == 0.6 and momentum[0].price == 150.0
    assert unknown == []
