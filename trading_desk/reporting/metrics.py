"""
세션 성과 지표 계산 모듈.

[ 역할 ]
    포트폴리오 상태 + 거래 기록 + 자산 곡선을 받아 세션 성과 지표를 계산.
    calculate_metrics() 함수가 핵심.

[ 계산하는 지표 ]
    - 총 자산 / 세션 손익 / 수익률
    - 실현 / 미실현 손익
    - 승률, 평균 수익/손실 (매도 거래 기준)
    - MDD (자산 곡선 기준 최대 낙폭)

[ 호출하는 곳 ]
    - reporting/snapshot.py::build_snapshot()
"""

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from trading_desk.data.portfolio import ExecutionChannel, Portfolio, Side, TradeRecord


@dataclass
class SessionMetrics:
    """세션 성과 지표."""
    total_equity: float = 0.0
    cash: float = 0.0
    total_pnl: float = 0.0
    total_pnl_rate: float = 0.0     # %
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    total_trades: int = 0           # 매수 + 매도
    sell_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0           # % (매도 거래 기준)
    avg_profit: float = 0.0
    avg_loss: float = 0.0
    max_drawdown: float = 0.0       # %
    live_trades: int = 0

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환."""
        from dataclasses import asdict
        return asdict(self)


def max_drawdown(equity_curve: Sequence[float]) -> float:
    """고점 대비 최대 하락폭 (%)."""
    if len(equity_curve) == 0:
        return 0.0
    values = np.asarray(equity_curve, dtype=float)
    peaks = np.maximum.accumulate(values)
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(peaks > 0, (peaks - values) / peaks * 100, 0.0)
    return float(drawdowns.max())


def calculate_metrics(
    portfolio: Portfolio,
    trades: Sequence[TradeRecord],
    equity_curve: Sequence[float] = (),
) -> SessionMetrics:
    """세션 성과 지표 계산.

    Args:
        portfolio: 현재 포트폴리오
        trades: 세션 거래 기록 전체
        equity_curve: 평가 시점별 총 자산 (MDD 계산용)
    """
    metrics = SessionMetrics(
        total_equity=portfolio.total_equity,
        cash=portfolio.cash,
        total_pnl=portfolio.total_pnl,
        total_pnl_rate=portfolio.total_pnl_rate,
        realized_pnl=portfolio.realized_pnl,
        unrealized_pnl=portfolio.unrealized_pnl,
        total_trades=len(trades),
        live_trades=sum(1 for t in trades if t.channel == ExecutionChannel.LIVE),
        max_drawdown=max_drawdown(equity_curve),
    )

    # 수익 실현은 매도 시에만 발생
    sells = [t for t in trades if t.side == Side.SELL]
    metrics.sell_trades = len(sells)
    if sells:
        profits = np.array([t.realized_pnl for t in sells], dtype=float)
        winners = profits[profits > 0]
        losers = profits[profits <= 0]
        metrics.winning_trades = int(winners.size)
        metrics.losing_trades = int(losers.size)
        metrics.win_rate = winners.size / profits.size * 100
        if winners.size:
            metrics.avg_profit = float(winners.mean())
        if losers.size:
            metrics.avg_loss = float(losers.mean())

    return metrics
