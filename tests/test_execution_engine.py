"""실행 엔진: 시뮬레이션/실주문 체결, 브로커 거부, 매도 클램프, 직렬화."""

import asyncio

import pytest

from trading_desk.brokers.mock_broker import MockBroker
from trading_desk.core.broker_api import BrokerCredentials
from trading_desk.data.portfolio import ExecutionChannel, Portfolio, Side
from trading_desk.trading.clock import VirtualClock
from trading_desk.trading.execution_engine import ExecutionEngine, new_trade_id
from trading_desk.trading.session import SessionStatus

CREDS = BrokerCredentials(api_key="key", username="trader", password="secret")


class ExplodingBroker(MockBroker):
    async def submit_trade(self, symbol, side, size):
        raise ConnectionError("gateway reset")


@pytest.fixture
def status() -> SessionStatus:
    return SessionStatus()


@pytest.fixture
def engine(portfolio, book, instruments, status) -> ExecutionEngine:
    return ExecutionEngine(portfolio, book, instruments, clock=VirtualClock(), status=status)


async def live_engine(portfolio, book, instruments, status, broker) -> ExecutionEngine:
    await broker.connect(CREDS)
    return ExecutionEngine(
        portfolio, book, instruments, broker=broker, live_trading=True, status=status,
    )


def test_trade_id_format():
    trade_id = new_trade_id()
    assert len(trade_id) == 9
    assert trade_id == trade_id.upper()


@pytest.mark.asyncio
async def test_simulated_buy_records_trade(engine, portfolio):
    record = await engine.execute_trade("AAA", Side.BUY, "dip")

    assert record is not None
    assert record.channel == ExecutionChannel.SIMULATED
    assert record.size == pytest.approx(0.05)
    assert record.price == 100.0
    assert record.rationale == "dip"
    assert portfolio.cash == pytest.approx(9_995.0)
    assert engine.trades == [record]


@pytest.mark.asyncio
async def test_unknown_price_is_noop(engine, portfolio):
    assert await engine.execute_trade("ZZZ", Side.BUY, "ghost") is None
    assert engine.trades == []
    assert portfolio.cash == 10_000.0


@pytest.mark.asyncio
async def test_sell_without_position_is_noop(engine):
    assert await engine.execute_trade("AAA", Side.SELL, "nothing held") is None
    assert engine.trades == []


@pytest.mark.asyncio
async def test_sell_is_clamped_to_holding(engine, portfolio):
    await engine.execute_trade("AAA", Side.BUY, "small", size_override=0.02)

    record = await engine.execute_trade("AAA", Side.SELL, "exit")

    assert record.size == pytest.approx(0.02)
    assert portfolio.held_quantity("AAA") == 0
    assert portfolio.cash == pytest.approx(10_000.0)


@pytest.mark.asyncio
async def test_buy_over_cash_is_noop(book, instruments):
    poor = Portfolio(100.0, symbols=[(i.symbol, i.name) for i in instruments])
    engine = ExecutionEngine(poor, book, instruments)

    # 100 lots * 2.0 = 200 > 100
    assert await engine.execute_trade("GAS", Side.BUY, "too big") is None
    assert poor.cash == 100.0
    assert engine.trades == []


@pytest.mark.asyncio
async def test_broker_rejection_leaves_ledger_untouched(portfolio, book, instruments, status):
    broker = MockBroker(accept_orders=False)
    engine = await live_engine(portfolio, book, instruments, status, broker)

    record = await engine.execute_trade("AAA", Side.BUY, "rejected")

    assert record is None
    assert engine.trades == []
    assert engine.failures == 1
    assert portfolio.cash == 10_000.0
    assert portfolio.held_quantity("AAA") == 0
    assert status.last_error is not None


@pytest.mark.asyncio
async def test_broker_exception_counts_as_failure(portfolio, book, instruments, status):
    engine = await live_engine(portfolio, book, instruments, status, ExplodingBroker())

    assert await engine.execute_trade("AAA", Side.BUY, "boom") is None
    assert engine.failures == 1
    assert portfolio.cash == 10_000.0


@pytest.mark.asyncio
async def test_live_trade_is_forwarded(portfolio, book, instruments, status):
    broker = MockBroker()
    engine = await live_engine(portfolio, book, instruments, status, broker)

    record = await engine.execute_trade("AAA", Side.BUY, "live")

    assert record.channel == ExecutionChannel.LIVE
    assert len(broker.orders) == 1
    order = next(iter(broker.orders.values()))
    assert order["symbol"] == "AAA"
    assert order["side"] == "BUY"


@pytest.mark.asyncio
async def test_live_toggle_without_session_stays_simulated(portfolio, book, instruments):
    broker = MockBroker()
    engine = ExecutionEngine(portfolio, book, instruments, broker=broker, live_trading=True)

    record = await engine.execute_trade("AAA", Side.BUY, "no session")

    assert not engine.is_live
    assert record.channel == ExecutionChannel.SIMULATED
    assert broker.orders == {}


@pytest.mark.asyncio
async def test_concurrent_sells_do_not_double_fill(engine, portfolio):
    await engine.execute_trade("AAA", Side.BUY, "entry")

    results = await asyncio.gather(
        engine.execute_trade("AAA", Side.SELL, "first"),
        engine.execute_trade("AAA", Side.SELL, "second"),
    )

    filled = [r for r in results if r is not None]
    assert len(filled) == 1
    assert portfolio.held_quantity("AAA") == 0
    assert len(engine.trades) == 2


@pytest.mark.asyncio
async def test_recent_trades_newest_first(engine):
    first = await engine.execute_trade("AAA", Side.BUY, "one")
    second = await engine.execute_trade("BBB", Side.BUY, "two")

    assert engine.recent_trades() == [second, first]
    assert engine.recent_trades(1) == [second]


@pytest.mark.asyncio
async def test_trade_log_limit(portfolio, book, instruments):
    engine = ExecutionEngine(portfolio, book, instruments, trade_log_limit=2)

    for _ in range(3):
        await engine.execute_trade("AAA", Side.BUY, "stack")

    assert len(engine.trades) == 2
    assert portfolio.held_quantity("AAA") == pytest.approx(0.15)


@pytest.mark.asyncio
async def test_lot_round_trip_leaves_nothing_to_sell(engine, portfolio):
    for _ in range(3):
        await engine.execute_trade("AAA", Side.BUY, "scale in")
    for _ in range(3):
        assert await engine.execute_trade("AAA", Side.SELL, "scale out") is not None

    assert await engine.execute_trade("AAA", Side.SELL, "one more") is None
    assert portfolio.held_quantity("AAA") == 0
    assert portfolio.get_holding_symbols() == []
    assert len([t for t in engine.trades if t.side == Side.SELL]) == 3
