"""
내보내기(Export) 스냅샷 모듈.

[ 역할 ]
    외부 리포트/내보내기 컴포넌트가 렌더링할 수 있도록
    {요약 지표, 전체 포지션 표, 전체 거래 기록}의 읽기 전용 스냅샷을 제공.
    코어는 서식 지정이나 파일 I/O를 하지 않는다.

[ 시트 구성 (to_frames) ]
    overview  - 지표/값 2열 (총 자산, 세션 손익, 거래 횟수 등)
    portfolio - 종목별 수량, 평균단가, 현재가, 미실현 손익
    trades    - 거래 ID, 시각, 종목, 방향, 가격, 수량, 경로, 근거 (최신순)

[ 호출하는 곳 ]
    - trading/desk.py::TradingDesk.snapshot()
    - run_desk.py --export (CSV 저장은 진입점에서 수행)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

import pandas as pd

from trading_desk.data.portfolio import Portfolio, TradeRecord
from trading_desk.reporting.metrics import calculate_metrics


@dataclass(frozen=True)
class DeskSnapshot:
    """읽기 전용 세션 스냅샷."""
    taken_at: datetime
    summary: dict[str, Any]
    positions: tuple[dict[str, Any], ...]
    trades: tuple[dict[str, Any], ...]

    def to_frames(self) -> dict[str, pd.DataFrame]:
        """pandas DataFrame 세 개로 변환 (overview, portfolio, trades)."""
        overview = pd.DataFrame(
            [{"metric": k, "value": v} for k, v in self.summary.items()],
            columns=["metric", "value"],
        )
        portfolio = pd.DataFrame(
            list(self.positions),
            columns=["symbol", "name", "quantity", "avg_cost", "current_price",
                     "market_value", "unrealized_pnl", "realized_pnl"],
        )
        trades = pd.DataFrame(
            list(self.trades),
            columns=["id", "timestamp", "symbol", "side", "price", "size",
                     "channel", "realized_pnl", "rationale"],
        )
        return {"overview": overview, "portfolio": portfolio, "trades": trades}


def build_snapshot(
    portfolio: Portfolio,
    trades: Sequence[TradeRecord],
    equity_curve: Sequence[float] = (),
    taken_at: datetime | None = None,
) -> DeskSnapshot:
    """현재 포트폴리오/거래 기록에서 스냅샷 생성.

    Args:
        portfolio: 현재 포트폴리오
        trades: 거래 기록 (오래된 것부터)
        equity_curve: 평가 시점별 총 자산
        taken_at: 스냅샷 시각
    """
    metrics = calculate_metrics(portfolio, trades, equity_curve)
    summary = {
        "initial_cash": portfolio.initial_cash,
        **metrics.to_dict(),
    }

    positions = tuple(
        {
            "symbol": p.symbol,
            "name": p.name,
            "quantity": p.quantity,
            "avg_cost": p.avg_cost,
            "current_price": p.mark_price,
            "market_value": p.market_value,
            "unrealized_pnl": p.unrealized_pnl,
            "realized_pnl": p.realized_pnl,
        }
        for p in portfolio.positions.values()
    )

    return DeskSnapshot(
        taken_at=taken_at or datetime.now(),
        summary=summary,
        positions=positions,
        trades=tuple(t.to_dict() for t in reversed(list(trades))),
    )
