"""
자동 청산(Auto-Exit) 모니터 모듈.

[ 역할 ]
    가격이 갱신될 때마다 보유 포지션의 미실현 손익을 점검하고,
    목표수익(profit_target) 이상이면 전량 매도를 실행 엔진에 요청.

[ 포지션 상태 ]
    FLAT    (수량 0)
    OPEN    (수량 > 0)  ── 미실현 손익 >= 목표 ──▶ CLOSING
    CLOSING (청산 요청 중) ── 체결로 수량 0 ──▶ FLAT
                          └─ 브로커 거부 등 ──▶ OPEN (다음 가격 갱신 때 재평가)

[ 중복 방지 ]
    CLOSING 상태의 종목은 다시 청산 요청하지 않으며, 엔진이 보유 수량 0인
    매도를 no-op으로 처리하므로 한 가격 갱신에서 두 번 발동하지 않는다.

[ 호출하는 곳 ]
    - trading/desk.py의 평가 주기 작업에서 mark_to_market() 직후 check() 호출
"""

import logging
from enum import Enum

from trading_desk.data.portfolio import Portfolio, Side, TradeRecord
from trading_desk.trading.execution_engine import ExecutionEngine

logger = logging.getLogger("trading_desk.execution")


class ExitState(Enum):
    FLAT = "FLAT"
    OPEN = "OPEN"
    CLOSING = "CLOSING"


class AutoExitMonitor:
    """목표수익 자동 청산 모니터."""

    def __init__(self, portfolio: Portfolio, engine: ExecutionEngine, profit_target: float = 250.0):
        self.portfolio = portfolio
        self.engine = engine
        self.profit_target = profit_target
        self.states: dict[str, ExitState] = {}

    def state_of(self, symbol: str) -> ExitState:
        if self.states.get(symbol) == ExitState.CLOSING:
            return ExitState.CLOSING
        return ExitState.OPEN if self.portfolio.held_quantity(symbol) > 0 else ExitState.FLAT

    def exit_rationale(self) -> str:
        return f"자동 목표수익 청산 (목표 ${self.profit_target:,.2f} 도달)"

    async def check(self) -> list[TradeRecord]:
        """모든 보유 포지션 점검. 실행된 청산 거래 목록 반환."""
        exits: list[TradeRecord] = []
        for symbol in self.portfolio.get_holding_symbols():
            if self.state_of(symbol) == ExitState.CLOSING:
                continue

            position = self.portfolio.get_position(symbol)
            unrealized = (position.mark_price - position.avg_cost) * position.quantity
            if unrealized < self.profit_target:
                continue

            logger.info(f"목표수익 도달: {symbol} 청산 (+${unrealized:,.2f})")
            self.states[symbol] = ExitState.CLOSING
            try:
                record = await self.engine.execute_trade(
                    symbol,
                    Side.SELL,
                    self.exit_rationale(),
                    size_override=position.quantity,
                )
            finally:
                self.states.pop(symbol, None)

            if record is not None:
                exits.append(record)
        return exits
