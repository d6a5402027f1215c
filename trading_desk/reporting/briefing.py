"""
세션 지표 기반 일일 브리핑 제공자.

[ 역할 ]
    core/briefing_provider.py::BriefingProvider의 구현체.
    외부 LLM 없이 거래 기록과 손익으로 DailyReport를 구성한다.
"""

from collections import Counter
from datetime import date
from typing import Sequence

from trading_desk.core.briefing_provider import BriefingProvider, DailyReport
from trading_desk.data.portfolio import Side, TradeRecord


class SessionBriefingProvider(BriefingProvider):
    """거래 기록 요약 브리핑."""

    def __init__(self, profit_target: float = 250.0, max_trades: int = 10):
        self.profit_target = profit_target
        self.max_trades = max_trades   # 요약에 포함할 최근 거래 수

    async def summarize(
        self,
        trades: Sequence[TradeRecord],
        pnl: float,
        on: date | None = None,
    ) -> DailyReport:
        recent = list(trades)[: self.max_trades]
        operations = ", ".join(f"{t.side.value} {t.symbol} @ {t.price:,.2f}" for t in recent)

        sells = [t for t in trades if t.side == Side.SELL]
        wins = sorted((t for t in sells if t.realized_pnl > 0), key=lambda t: t.realized_pnl, reverse=True)
        target_hits = [t for t in wins if t.realized_pnl >= self.profit_target]
        most_traded = Counter(t.symbol for t in trades).most_common(1)

        lessons = []
        if len(sells) > len(wins):
            lessons.append(f"매도 {len(sells)}건 중 {len(sells) - len(wins)}건이 손실 또는 본전 청산")
        if not target_hits:
            lessons.append(f"목표수익 ${self.profit_target:,.2f}에 도달한 청산 없음")
        if not lessons:
            lessons.append("모든 청산이 수익으로 마감")

        focus = most_traded[0][0] if most_traded else "-"
        return DailyReport(
            date=(on or date.today()).isoformat(),
            summary=f"세션 손익 ${pnl:,.2f}. 주요 거래: {operations or '없음'}",
            total_profit_loss=pnl,
            major_wins=[f"{t.symbol} +${t.realized_pnl:,.2f}" for t in wins[:3]],
            lessons_learned=lessons,
            strategy_update=f"가장 활발한 종목 {focus} 중심으로 목표수익 청산 전략 유지",
        )
