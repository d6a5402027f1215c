"""
포트폴리오 원장(Ledger) 모듈.

[ 역할 ]
    현금, 보유 종목(Position)을 통합 관리하는 단일 진실 공급원.
    실행 엔진이 체결 시 apply_fill()을 통해서만 상태를 갱신.

[ 주요 클래스 ]
    Position    - 개별 종목의 수량/평균단가/평가가격/실현손익 추적
    TradeRecord - 개별 체결 기록 (불변, 실행 엔진만 생성)
    FillResult  - apply_fill()의 반환값 (체결/거부 수량, 실현손익)
    Portfolio   - 전체 포트폴리오 (현금 + 포지션들)

[ 정책 ]
    - 매수: 현금을 초과하는 체결은 거부 (현금은 음수가 되지 않음)
    - 매도: 보유 수량으로 클램프, 초과분은 거부 (현금 입금도 클램프된 수량 기준)
    - 실현손익은 평균단가와 분리하여 포지션별로 누적

[ 호출하는 곳 ]
    - trading/execution_engine.py::ExecutionEngine.execute_trade()에서 apply_fill() 호출
    - trading/desk.py에서 가격 갱신 시 mark_to_market() 호출
    - reporting/에서 get_summary(), positions 조회
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping

# 이 값 이하의 잔량은 부동소수점 오차로 보고 0으로 본다
QTY_EPSILON = 1e-9


class Side(Enum):
    """체결 방향."""
    BUY = "BUY"
    SELL = "SELL"


class ExecutionChannel(Enum):
    """체결 경로. 브로커로 전달된 주문이면 LIVE."""
    SIMULATED = "SIMULATED"
    LIVE = "LIVE"


@dataclass
class Position:
    """개별 종목 포지션. Portfolio 내부에서 종목별로 관리됨."""
    symbol: str
    name: str = ""
    quantity: float = 0.0       # 보유 수량 (항상 0 이상)
    avg_cost: float = 0.0       # 평균 매수가 (quantity > 0일 때만 의미 있음)
    mark_price: float = 0.0     # 최신 평가 가격
    realized_pnl: float = 0.0   # 누적 실현 손익

    @property
    def is_open(self) -> bool:
        return self.quantity > QTY_EPSILON

    @property
    def market_value(self) -> float:
        """현재 시장 가치 (평가 가격 기준)."""
        return self.quantity * self.mark_price

    @property
    def unrealized_pnl(self) -> float:
        """미실현 손익."""
        if self.quantity <= QTY_EPSILON:
            return 0.0
        return (self.mark_price - self.avg_cost) * self.quantity

    def update_on_buy(self, size: float, price: float) -> None:
        """매수 시 포지션 업데이트. 평균단가는 가중평균."""
        total_cost = self.avg_cost * self.quantity + price * size
        self.quantity += size
        self.avg_cost = total_cost / self.quantity if self.quantity > 0 else 0.0

    def update_on_sell(self, size: float, price: float) -> float:
        """매도 시 포지션 업데이트. 실현 손익 반환.

        size는 호출 전에 보유 수량 이하로 클램프되어 있어야 한다.
        """
        realized = (price - self.avg_cost) * size
        self.quantity -= size
        self.realized_pnl += realized
        if self.quantity <= QTY_EPSILON:
            self.quantity = 0.0
            self.avg_cost = 0.0
        return realized


@dataclass(frozen=True)
class TradeRecord:
    """개별 체결 기록. 생성 후 변경 불가."""
    id: str
    symbol: str
    side: Side
    price: float        # 체결 가격
    size: float         # 체결 수량
    timestamp: datetime
    rationale: str = ""
    channel: ExecutionChannel = ExecutionChannel.SIMULATED
    realized_pnl: float = 0.0   # 매도 시에만

    @property
    def notional(self) -> float:
        return self.price * self.size

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "side": self.side.value,
            "price": self.price,
            "size": self.size,
            "channel": self.channel.value,
            "realized_pnl": self.realized_pnl,
            "rationale": self.rationale,
        }


@dataclass
class FillResult:
    """apply_fill()의 반환값."""
    symbol: str
    side: Side
    price: float
    requested_size: float
    filled_size: float = 0.0
    rejected_size: float = 0.0
    realized_pnl: float = 0.0
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.filled_size > 0


class Portfolio:
    """포트폴리오 원장 클래스.

    ExecutionEngine이 유일한 쓰기 주체이며, apply_fill()이 현금/포지션의
    유일한 변경 경로. 동시 체결 직렬화는 엔진의 락이 담당한다.
    """

    def __init__(self, initial_cash: float, symbols: Iterable[tuple[str, str]] = ()):
        self.initial_cash = initial_cash
        self.cash = initial_cash                    # 가용 현금
        self.positions: dict[str, Position] = {}    # symbol → Position
        for symbol, name in symbols:
            self.positions[symbol] = Position(symbol=symbol, name=name)

    @property
    def holdings_value(self) -> float:
        """보유 종목 평가 금액 합계."""
        return sum(p.market_value for p in self.positions.values())

    @property
    def total_equity(self) -> float:
        """총 자산 (현금 + 수량 × 평가가격)."""
        return self.cash + self.holdings_value

    @property
    def total_pnl(self) -> float:
        """세션 손익."""
        return self.total_equity - self.initial_cash

    @property
    def total_pnl_rate(self) -> float:
        """세션 수익률 (%)."""
        if self.initial_cash == 0:
            return 0.0
        return self.total_pnl / self.initial_cash * 100

    @property
    def realized_pnl(self) -> float:
        return sum(p.realized_pnl for p in self.positions.values())

    @property
    def unrealized_pnl(self) -> float:
        return sum(p.unrealized_pnl for p in self.positions.values())

    def get_position(self, symbol: str) -> Position:
        """종목 포지션 조회. 없으면 빈 포지션 생성."""
        if symbol not in self.positions:
            self.positions[symbol] = Position(symbol=symbol, name=symbol)
        return self.positions[symbol]

    def held_quantity(self, symbol: str) -> float:
        position = self.positions.get(symbol)
        return position.quantity if position and position.is_open else 0.0

    def mark_to_market(self, prices: Mapping[str, float]) -> None:
        """평가 가격 갱신. 수량/평균단가/현금은 건드리지 않음."""
        for symbol, price in prices.items():
            self.get_position(symbol).mark_price = price

    def apply_fill(self, symbol: str, side: Side, price: float, size: float) -> FillResult:
        """체결 반영. 현금/포지션의 유일한 변경 경로.

        Args:
            symbol: 종목 코드
            side: 매수/매도
            price: 체결 가격
            size: 요청 수량

        Returns:
            FillResult: 체결/거부 수량과 실현 손익
        """
        result = FillResult(symbol=symbol, side=side, price=price, requested_size=size)
        if price <= 0 or size <= 0:
            result.rejected_size = max(size, 0.0)
            result.message = "invalid price or size"
            return result

        position = self.get_position(symbol)

        if side == Side.BUY:
            cost = price * size
            if cost > self.cash:
                result.rejected_size = size
                result.message = "insufficient cash"
                return result
            self.cash -= cost
            position.update_on_buy(size, price)
            position.mark_price = price
            result.filled_size = size
            return result

        # 매도: 보유 수량으로 클램프, 초과분 거부
        held = position.quantity
        if not position.is_open:
            result.rejected_size = size
            result.message = "no position"
            return result
        # 보유 수량과 오차 범위 내로 같으면 전량 매도
        filled = held if size >= held - QTY_EPSILON else size

        self.cash += price * filled
        result.realized_pnl = position.update_on_sell(filled, price)
        position.mark_price = price
        result.filled_size = filled
        excess = size - filled
        if excess > QTY_EPSILON:
            result.rejected_size = excess
            result.message = "sell size clamped to held quantity"
        return result

    def get_holding_symbols(self) -> list[str]:
        """보유 종목 코드 목록."""
        return [s for s, p in self.positions.items() if p.is_open]

    def get_summary(self) -> dict[str, Any]:
        """포트폴리오 요약."""
        return {
            "initial_cash": self.initial_cash,
            "current_cash": self.cash,
            "holdings_value": self.holdings_value,
            "total_equity": self.total_equity,
            "total_pnl": self.total_pnl,
            "total_pnl_rate": self.total_pnl_rate,
            "realized_pnl": self.realized_pnl,
            "unrealized_pnl": self.unrealized_pnl,
            "num_holdings": len(self.get_holding_symbols()),
        }
