import pytest

from analysis.market_analysis import MarketAnalyzer
from analysis.models import MarketSnapshot


class FakeOracle:
    def __init__(self, snapshots, sentiment=0.0):
        self.snapshots = {s.token: s for s in snapshots}
        self.sentiment = sentiment

    async def get_token_price(self, token, network=None):
        return self.snapshots[token]

    async def get_multiple_token_prices(self, tokens, network=None):
        return [self.snapshots[t] for t in tokens]

    async def get_sentiment(self, token):
        return self.sentiment


def _snapshot(token, change, volume=0.0, price=1.0, liquidity=0.0):
    return MarketSnapshot(
        token=token,
        price=price,
        volume_24h=volume,
        price_change_24h=change,
        liquidity=liquidity,
        timestamp=0.0,
    )


@pytest.mark.asyncio
async def test_analyze_token_scores_snapshot_with_sentiment():
    oracle = FakeOracle([_snapshot('AAA', 0.0, volume=2_000_000)], sentiment=1.0)
    analyzer = MarketAnalyzer(oracle)

    analysis = await analyzer.analyze_token('AAA')

    assert analysis.sentiment == 1.0
    assert analysis.snapshot.token == 'AAA'
    assert [s.action for s in analysis.signals] == ['buy', 'hold']
    assert analysis.signals[0].token == 'AAA'


@pytest.mark.asyncio
async def test_market_overview_ranks_gainers_losers_and_volume():
    oracle = FakeOracle([
        _snapshot('AAA', 5.0, volume=100.0),
        _snapshot('BBB', -8.0, volume=900.0),
        _snapshot('CCC', 12.0, volume=500.0),
    ])
    analyzer = MarketAnalyzer(oracle)

    overview = await analyzer.get_market_overview(['AAA', 'BBB', 'CCC'])

    assert [s.token for s in overview.top_gainers] == ['CCC', 'AAA', 'BBB']
    assert [s.token for s in overview.top_losers] == ['BBB', 'AAA', 'CCC']
    assert [s.token for s in overview.highest_volume] == ['BBB', 'CCC', 'AAA']
    assert {s.token for s in overview.signals} == {'AAA', 'BBB', 'CCC'}


@pytest.mark.asyncio
async def test_market_overview_signals_only_for_top_five_gainers():
    snapshots = [_snapshot(f"T{i}", float(i)) for i in range(7)]
    analyzer = MarketAnalyzer(FakeOracle(snapshots))

    overview = await analyzer.get_market_overview([s.token for s in snapshots])

    assert {s.token for s in overview.signals} == {'T6', 'T5', 'T4', 'T3', 'T2'}


@pytest.mark.asyncio
async def test_generate_technical_analysis_uses_snapshot():
    analyzer = MarketAnalyzer(FakeOracle([_snapshot('AAA', -4.0, price=50.0)]))

    analysis = await analyzer.generate_technical_analysis('AAA')

    assert analysis.trend == 'bearish'
    assert analysis.support == pytest.approx(48.0)
    assert analysis.resistance == pytest.approx(52.0)
    assert analysis.timeframe == '1d'


@pytest.mark.asyncio
async def test_generate_technical_analysis_carries_timeframe():
    analyzer = MarketAnalyzer(FakeOracle([_snapshot('AAA', 1.0, price=50.0)]))

    analysis = await analyzer.generate_technical_analysis('AAA', '1w')

    assert analysis.timeframe == '1w'
    assert analysis.trend == 'neutral'
