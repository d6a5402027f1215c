"""세션 지표, 스냅샷, 브리핑."""

from datetime import datetime

import pytest

from trading_desk.data.portfolio import ExecutionChannel, Portfolio, Side, TradeRecord
from trading_desk.reporting.briefing import SessionBriefingProvider
from trading_desk.reporting.metrics import calculate_metrics, max_drawdown
from trading_desk.reporting.snapshot import build_snapshot

from conftest import T0


def trade(trade_id, side, symbol="BTC", price=100.0, size=1.0, realized=0.0, channel=ExecutionChannel.SIMULATED):
    return TradeRecord(
        id=trade_id,
        symbol=symbol,
        side=side,
        price=price,
        size=size,
        timestamp=T0,
        rationale="test",
        channel=channel,
        realized_pnl=realized,
    )


@pytest.fixture
def trades() -> list[TradeRecord]:
    return [
        trade("A1", Side.BUY),
        trade("A2", Side.SELL, realized=300.0, channel=ExecutionChannel.LIVE),
        trade("A3", Side.BUY, symbol="ETH"),
        trade("A4", Side.SELL, symbol="ETH", realized=-40.0),
    ]


def test_max_drawdown():
    assert max_drawdown([100.0, 120.0, 90.0, 130.0]) == pytest.approx(25.0)
    assert max_drawdown([100.0, 110.0]) == 0.0
    assert max_drawdown([]) == 0.0


def test_calculate_metrics(trades):
    portfolio = Portfolio(1_000.0)

    metrics = calculate_metrics(portfolio, trades, [1_000.0, 900.0])

    assert metrics.total_trades == 4
    assert metrics.sell_trades == 2
    assert metrics.winning_trades == 1
    assert metrics.losing_trades == 1
    assert metrics.win_rate == pytest.approx(50.0)
    assert metrics.avg_profit == pytest.approx(300.0)
    assert metrics.avg_loss == pytest.approx(-40.0)
    assert metrics.live_trades == 1
    assert metrics.max_drawdown == pytest.approx(10.0)


def test_snapshot_frames(trades):
    portfolio = Portfolio(1_000.0, symbols=[("BTC", "Bitcoin"), ("ETH", "Ethereum")])
    taken = datetime(2024, 5, 1, 12, 0)

    snapshot = build_snapshot(portfolio, trades, [1_000.0], taken_at=taken)
    frames = snapshot.to_frames()

    assert set(frames) == {"overview", "portfolio", "trades"}
    assert list(frames["portfolio"]["symbol"]) == ["BTC", "ETH"]
    assert list(frames["trades"]["id"]) == ["A4", "A3", "A2", "A1"]
    overview = dict(zip(frames["overview"]["metric"], frames["overview"]["value"]))
    assert overview["initial_cash"] == 1_000.0
    assert overview["total_trades"] == 4
    assert snapshot.taken_at == taken


def test_snapshot_with_no_trades_has_empty_sheet():
    snapshot = build_snapshot(Portfolio(1_000.0, symbols=[("BTC", "Bitcoin")]), [])
    frames = snapshot.to_frames()

    assert frames["trades"].empty
    assert "rationale" in frames["trades"].columns


@pytest.mark.asyncio
async def test_briefing_highlights_wins(trades):
    report = await SessionBriefingProvider(profit_target=250.0).summarize(list(reversed(trades)), 260.0)

    assert report.total_profit_loss == 260.0
    assert report.major_wins == ["BTC +$300.00"]
    assert any("손실" in lesson for lesson in report.lessons_learned)
    assert "SELL ETH" in report.summary
