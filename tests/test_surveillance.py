"""감시 스윕: working cash 누적, 종목별 실패 격리, lookback, 출처 병합, 지능 점수."""

import asyncio

import pytest

from trading_desk.core.analysis_provider import SourceCitation
from trading_desk.data.instruments import TradeSizes
from trading_desk.data.portfolio import Portfolio, Side
from trading_desk.data.price_series import PricePoint
from trading_desk.trading.auto_exit import AutoExitMonitor
from trading_desk.trading.decision_gate import DecisionGate
from trading_desk.trading.execution_engine import ExecutionEngine
from trading_desk.trading.session import SessionStatus
from trading_desk.trading.surveillance import SurveillanceScheduler

from conftest import T0, RaisingProvider, ScriptedProvider, buy, sell


def make_scheduler(instruments, book, portfolio, provider, **kwargs) -> SurveillanceScheduler:
    engine = ExecutionEngine(portfolio, book, instruments)
    return SurveillanceScheduler(
        instruments, book, portfolio, provider, DecisionGate(0.82), engine, **kwargs,
    )


@pytest.fixture
def status() -> SessionStatus:
    return SessionStatus(monitoring=True)


@pytest.mark.asyncio
async def test_working_cash_prevents_overdraw(instruments, book, status):
    coins = instruments[:2]
    tight = Portfolio(7.0, symbols=[(i.symbol, i.name) for i in coins])
    provider = ScriptedProvider({"AAA": buy(), "BBB": buy()})
    scheduler = make_scheduler(coins, book, tight, provider)

    report = await scheduler.run_sweep(status, "NEUTRAL")

    assert [t.symbol for t in report.trades] == ["AAA"]
    assert report.working_cash == pytest.approx(2.0)
    assert tight.cash == pytest.approx(2.0)
    assert [c["cash"] for c in provider.calls] == pytest.approx([7.0, 2.0])


@pytest.mark.asyncio
async def test_sell_adds_back_to_working_cash(instruments, book, portfolio, status):
    portfolio.apply_fill("AAA", Side.BUY, 100.0, 0.05)
    provider = ScriptedProvider({"AAA": sell(), "BBB": buy()})
    scheduler = make_scheduler(instruments[:2], book, portfolio, provider)

    report = await scheduler.run_sweep(status, "NEUTRAL")

    assert [t.side for t in report.trades] == [Side.SELL, Side.BUY]
    assert provider.calls[1]["cash"] == pytest.approx(10_000.0)
    assert report.working_cash == pytest.approx(9_995.0)


@pytest.mark.asyncio
async def test_failing_instrument_does_not_stop_sweep(instruments, book, portfolio, status):
    provider = RaisingProvider({"AAA"}, results={"BBB": buy()})
    scheduler = make_scheduler(instruments[:2], book, portfolio, provider)

    report = await scheduler.run_sweep(status, "NEUTRAL")

    assert report.failed == ["AAA"]
    assert report.evaluated == ["BBB"]
    assert [t.symbol for t in report.trades] == ["BBB"]


@pytest.mark.asyncio
async def test_provider_error_fails_closed(instruments, book, portfolio, status):
    provider = ScriptedProvider(errors={"AAA": ValueError("bad payload")})
    scheduler = make_scheduler(instruments[:1], book, portfolio, provider)

    report = await scheduler.run_sweep(status, "NEUTRAL")

    assert report.evaluated == ["AAA"]
    assert report.trades == []
    assert portfolio.cash == 10_000.0


@pytest.mark.asyncio
async def test_short_history_is_skipped(instruments, make_book, portfolio, status):
    book = make_book({"AAA": [100.0] * 5, "BBB": [100.0] * 3})
    provider = ScriptedProvider({"AAA": buy(), "BBB": buy()})
    scheduler = make_scheduler(instruments[:2], book, portfolio, provider, min_lookback=5)

    report = await scheduler.run_sweep(status, "NEUTRAL")

    assert report.skipped == ["BBB"]
    assert [c["symbol"] for c in provider.calls] == ["AAA"]


@pytest.mark.asyncio
async def test_sources_are_deduplicated_and_bounded(instruments, book, portfolio):
    status = SessionStatus(monitoring=True, max_sources=2)
    status.sources = [SourceCitation("old", "https://old.example")]
    news = SourceCitation("news", "https://news.example")
    desk_note = SourceCitation("note", "https://note.example")
    provider = ScriptedProvider({
        "AAA": buy(0.1, sources=[news, desk_note]),
        "BBB": buy(0.1, sources=[news]),
    })
    scheduler = make_scheduler(instruments[:2], book, portfolio, provider)

    await scheduler.run_sweep(status, "NEUTRAL")

    assert [s.uri for s in status.sources] == ["https://news.example", "https://note.example"]


@pytest.mark.asyncio
async def test_sweep_nudges_intelligence_up_to_cap(instruments, book, portfolio):
    status = SessionStatus(monitoring=True, intelligence_level=99.99)
    scheduler = make_scheduler(instruments[:1], book, portfolio, ScriptedProvider())

    await scheduler.run_sweep(status, "NEUTRAL")
    assert status.intelligence_level == 100.0

    await scheduler.run_sweep(status, "NEUTRAL")
    assert status.intelligence_level == 100.0
    assert status.last_action == "Surveillance active"


@pytest.mark.asyncio
async def test_sentiment_label_is_passed_to_provider(instruments, book, portfolio, status):
    provider = ScriptedProvider()
    scheduler = make_scheduler(instruments[:1], book, portfolio, provider)

    await scheduler.run_sweep(status, "BULLISH")

    assert provider.calls[0]["sentiment"] == "BULLISH"
    assert provider.calls[0]["history"] == [100.0] * 5


class GatedProvider(ScriptedProvider):
    """지정 종목의 분석이 release 될 때까지 대기하는 제공자."""

    def __init__(self, results=None, gated: str = "AAA"):
        super().__init__(results=results)
        self.gated = gated
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def _analyze(self, symbol, price_history, cash, held_quantity, sentiment):
        if symbol == self.gated:
            self.started.set()
            await self.release.wait()
        return await super()._analyze(symbol, price_history, cash, held_quantity, sentiment)


async def sweep_with_exit_in_between(scheduler, monitor, provider, status):
    """분석 대기 중에 자동청산을 끼워 넣고 (스윕 보고, 청산 목록) 반환."""
    sweep = asyncio.create_task(scheduler.run_sweep(status, "NEUTRAL"))
    await provider.started.wait()
    exits = await monitor.check()
    provider.release.set()
    return await sweep, exits


@pytest.mark.asyncio
async def test_auto_exit_during_analysis_does_not_leak_into_working_cash(
    instruments, book, portfolio, status,
):
    portfolio.apply_fill("BBB", Side.BUY, 100.0, 5)
    book.append("BBB", PricePoint(T0, 160.0))
    portfolio.mark_to_market({"BBB": 160.0})

    engine = ExecutionEngine(portfolio, book, instruments)
    provider = GatedProvider({"AAA": buy()})
    scheduler = SurveillanceScheduler(
        instruments[:2], book, portfolio, provider, DecisionGate(0.82), engine,
    )
    monitor = AutoExitMonitor(portfolio, engine, profit_target=250.0)

    report, exits = await sweep_with_exit_in_between(scheduler, monitor, provider, status)

    assert [(t.symbol, t.side) for t in exits] == [("BBB", Side.SELL)]
    assert [t.symbol for t in report.trades] == ["AAA"]
    # 스윕 시작 현금 9,500에서 자체 체결(AAA 5.0)만 차감
    assert provider.calls[1]["symbol"] == "BBB"
    assert provider.calls[1]["cash"] == pytest.approx(9_495.0)
    assert report.working_cash == pytest.approx(9_495.0)
    assert portfolio.cash == pytest.approx(10_295.0)


@pytest.mark.asyncio
async def test_gate_sell_racing_auto_exit_fills_once(instruments, book, portfolio, status):
    portfolio.apply_fill("AAA", Side.BUY, 100.0, 5)
    book.append("AAA", PricePoint(T0, 160.0))
    portfolio.mark_to_market({"AAA": 160.0})

    engine = ExecutionEngine(portfolio, book, instruments)
    provider = GatedProvider({"AAA": sell()})
    scheduler = SurveillanceScheduler(
        instruments[:1], book, portfolio, provider, DecisionGate(0.82), engine,
    )
    monitor = AutoExitMonitor(portfolio, engine, profit_target=250.0)

    report, exits = await sweep_with_exit_in_between(scheduler, monitor, provider, status)

    sells = [t for t in engine.trades if t.side == Side.SELL]
    assert len(sells) == 1
    assert sells[0].rationale == monitor.exit_rationale()
    assert exits == sells
    assert report.trades == []
    assert portfolio.held_quantity("AAA") == 0


@pytest.mark.asyncio
async def test_executed_size_follows_gate_trade_sizes(instruments, book, portfolio, status):
    engine = ExecutionEngine(portfolio, book, instruments)
    gate = DecisionGate(0.82, trade_sizes=TradeSizes(crypto=0.2))
    scheduler = SurveillanceScheduler(
        instruments[:1], book, portfolio, ScriptedProvider({"AAA": buy()}), gate, engine,
    )

    report = await scheduler.run_sweep(status, "NEUTRAL")

    assert [t.size for t in report.trades] == pytest.approx([0.2])
    assert portfolio.cash == pytest.approx(9_980.0)
