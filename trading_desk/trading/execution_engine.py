"""
실행 엔진(Execution Engine) 모듈.

[ 역할 ]
    체결 요청을 포트폴리오 원장에 반영하고 거래 기록(TradeRecord)을 남긴다.
    실주문 모드에서는 먼저 브로커 어댑터로 주문을 전달한다.

[ 실행 흐름 ]
    execute_trade() 호출 시 (엔진 락 안에서 전부 실행):
        1. 종목 최신 가격 조회 → 없으면 no-op
        2. 수량 결정 (강제 청산은 override, 그 외 자산군 기본 수량)
           매도 수량은 보유 수량으로 클램프, 보유 없으면 no-op
        3. 실주문 모드 + 브로커 연결 시 submit_trade()
           → 거부/예외면 중단 (원장 변경 없음, 실행 실패 로그)
        4. portfolio.apply_fill() → TradeRecord 추가 (SIMULATED / LIVE)

[ 보장 ]
    - 거래는 원장 반영 + 기록까지 완료되거나, 아무 영향도 없다 (부분 체결 없음)
    - 모든 원장 변경은 하나의 asyncio.Lock으로 직렬화 (자동청산 vs 감시 스윕)

[ 호출하는 곳 ]
    - trading/surveillance.py (게이트 통과 결정)
    - trading/auto_exit.py (목표수익 강제 청산)
"""

import asyncio
import logging
import uuid
from collections import deque
from typing import Iterable, Optional

from trading_desk.core.broker_api import BrokerAPI
from trading_desk.data.instruments import Instrument, TradeSizes
from trading_desk.data.portfolio import QTY_EPSILON, ExecutionChannel, Portfolio, Side, TradeRecord
from trading_desk.data.price_series import PriceBook
from trading_desk.trading.clock import Clock, SystemClock
from trading_desk.trading.session import SessionStatus

logger = logging.getLogger("trading_desk.execution")


def new_trade_id() -> str:
    return uuid.uuid4().hex[:9].upper()


class ExecutionEngine:
    """실행 엔진. 포트폴리오 원장의 유일한 쓰기 주체."""

    def __init__(
        self,
        portfolio: Portfolio,
        price_book: PriceBook,
        instruments: Iterable[Instrument],
        trade_sizes: TradeSizes | None = None,
        broker: BrokerAPI | None = None,
        live_trading: bool = False,
        clock: Clock | None = None,
        trade_log_limit: int | None = None,
        status: SessionStatus | None = None,
    ):
        self.portfolio = portfolio
        self.price_book = price_book
        self.instruments: dict[str, Instrument] = {i.symbol: i for i in instruments}
        self.trade_sizes = trade_sizes or TradeSizes()
        self.broker = broker
        self.live_trading = live_trading
        self.clock = clock or SystemClock()
        self.status = status

        self._trades: deque[TradeRecord] = deque(maxlen=trade_log_limit)
        self._lock = asyncio.Lock()
        self.failures = 0   # 브로커 거부/오류 횟수

    @property
    def is_live(self) -> bool:
        """실주문 전달 여부 (토글 on + 브로커 세션 활성)."""
        return self.live_trading and self.broker is not None and self.broker.is_connected

    @property
    def trades(self) -> list[TradeRecord]:
        """전체 거래 기록 (오래된 것부터)."""
        return list(self._trades)

    def recent_trades(self, n: int | None = None) -> list[TradeRecord]:
        """최신순 거래 기록."""
        ordered = list(reversed(self._trades))
        return ordered if n is None else ordered[:n]

    def set_live_trading(self, enabled: bool) -> None:
        self.live_trading = enabled
        logger.info(f"실주문 전달 {'활성화' if enabled else '비활성화'}")

    async def execute_trade(
        self,
        symbol: str,
        side: Side,
        rationale: str,
        size_override: float | None = None,
    ) -> Optional[TradeRecord]:
        """거래 실행. 체결되면 TradeRecord, 아니면 None.

        Args:
            symbol: 종목 코드
            side: 매수/매도
            rationale: 결정 근거 (기록용)
            size_override: 강제 청산 등에서 쓰는 수량 (None이면 자산군 기본 수량)
        """
        async with self._lock:
            return await self._execute_locked(symbol, side, rationale, size_override)

    async def _execute_locked(
        self,
        symbol: str,
        side: Side,
        rationale: str,
        size_override: float | None,
    ) -> Optional[TradeRecord]:
        price = self.price_book.latest_price(symbol)
        if price is None:
            logger.warning(f"{symbol} 가격 없음, 실행 생략")
            return None

        size = self._resolve_size(symbol, size_override)
        if size is None:
            logger.warning(f"{symbol} 알 수 없는 종목, 실행 생략")
            return None

        if side == Side.SELL:
            held = self.portfolio.held_quantity(symbol)
            if held <= QTY_EPSILON:
                logger.debug(f"{symbol} 보유 수량 없음, 매도 생략")
                return None
            if size > held + QTY_EPSILON:
                logger.info(f"{symbol} 매도 수량 {size} → 보유 수량 {held}로 조정")
                size = held
        elif price * size > self.portfolio.cash:
            logger.debug(f"{symbol} 현금 부족, 매수 생략")
            return None

        live = self.is_live
        if live and not await self._forward_to_broker(symbol, side, size):
            self.failures += 1
            logger.error(f"실행 실패: 브로커가 {side.value} {symbol} 주문을 거부했습니다.")
            if self.status is not None:
                self.status.last_error = f"브로커 거부: {side.value} {symbol}"
            return None

        fill = self.portfolio.apply_fill(symbol, side, price, size)
        if not fill.accepted:
            logger.debug(f"{symbol} 체결 거부: {fill.message}")
            return None

        record = TradeRecord(
            id=new_trade_id(),
            symbol=symbol,
            side=side,
            price=price,
            size=fill.filled_size,
            timestamp=self.clock.now(),
            rationale=rationale,
            channel=ExecutionChannel.LIVE if live else ExecutionChannel.SIMULATED,
            realized_pnl=fill.realized_pnl,
        )
        self._trades.append(record)
        logger.info(f"{'[LIVE]' if live else '[SIM]'} {side.value} {symbol} {record.size:g} @ {price:,.2f}")
        return record

    def _resolve_size(self, symbol: str, size_override: float | None) -> Optional[float]:
        if size_override is not None and size_override > 0:
            return size_override
        instrument = self.instruments.get(symbol)
        if instrument is None:
            return None
        return self.trade_sizes.default_size(instrument)

    async def _forward_to_broker(self, symbol: str, side: Side, size: float) -> bool:
        try:
            return bool(await self.broker.submit_trade(symbol, side, size))
        except Exception as e:
            logger.error(f"브로커 주문 전달 오류: {e}")
            return False
