"""
일일 브리핑 제공자 추상 클래스 정의.

[ 역할 ]
    세션 거래 내역과 손익을 받아 일일 브리핑(DailyReport)을 생성하는 인터페이스.
    실패 시 코어가 DailyReport.placeholder()로 대체한다.

[ 구현체 ]
    - reporting/briefing.py::SessionBriefingProvider (세션 지표 기반 템플릿)

[ 호출하는 곳 ]
    - trading/desk.py::TradingDesk.generate_briefing()
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Sequence

from trading_desk.data.portfolio import TradeRecord


@dataclass
class DailyReport:
    """일일 브리핑."""
    date: str
    summary: str
    total_profit_loss: float
    major_wins: list[str] = field(default_factory=list)
    lessons_learned: list[str] = field(default_factory=list)
    strategy_update: str = ""

    @classmethod
    def placeholder(cls, pnl: float, on: date | None = None) -> "DailyReport":
        """브리핑 생성 실패 시 대체 리포트."""
        return cls(
            date=(on or date.today()).isoformat(),
            summary="일일 자산 처리 중 지연이 발생하여 요약을 생성하지 못했습니다.",
            total_profit_loss=pnl,
            major_wins=["메타데이터 동기화 완료"],
            lessons_learned=["복합 시장은 빠른 분석이 필요합니다"],
            strategy_update="원자재 재고 지표와 암호화폐 거래소 유입량을 함께 모니터링합니다.",
        )

    def to_dict(self) -> dict[str, Any]:
        from dataclasses import asdict
        return asdict(self)


class BriefingProvider(ABC):
    """일일 브리핑 제공자 추상 클래스."""

    @abstractmethod
    async def summarize(
        self,
        trades: Sequence[TradeRecord],
        pnl: float,
        on: date | None = None,
    ) -> DailyReport:
        """브리핑 생성.

        Args:
            trades: 세션 거래 내역 (최신순)
            pnl: 세션 손익
            on: 브리핑 날짜 (None이면 오늘). 데스크는 자신의 시계 기준 날짜를 넘긴다.
        """
        ...
