"""
단기/장기 이동평균 교차(MA Cross) 분석 제공자.

[ 역할 ]
    core/analysis_provider.py::AnalysisProvider의 구현체.
    "단기 이동평균이 장기 이동평균을 상향 돌파하면 매수, 하향 돌파하면 매도"

[ 파라미터 ]
    short_period: 단기 이동평균 기간
    long_period:  장기 이동평균 기간
    base_confidence: 교차 발생 시 기본 신뢰도
"""

from typing import Any

import pandas as pd

from trading_desk.core.analysis_provider import (
    AnalysisProvider,
    AnalysisResult,
    Decision,
    TechnicalIndicators,
    Trend,
)
from trading_desk.providers import register


@register("ma_cross")
class MACrossProvider(AnalysisProvider):
    """이동평균 교차 제공자."""

    DEFAULT_PARAMS = {
        "short_period": 3,
        "long_period": 8,
        "base_confidence": 0.8,
    }

    def __init__(self, params: dict[str, Any] | None = None, timeout: float = 10.0):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="ma_cross", params=merged, timeout=timeout)

    @property
    def short_period(self) -> int:
        return int(self.params["short_period"])

    @property
    def long_period(self) -> int:
        return int(self.params["long_period"])

    async def _analyze(
        self,
        symbol: str,
        price_history: list[float],
        cash: float,
        held_quantity: float,
        sentiment: str,
    ) -> AnalysisResult:
        if len(price_history) < self.long_period + 1:
            return AnalysisResult(
                decision=Decision.HOLD,
                confidence=0.0,
                rationale=f"데이터 부족 (최소 {self.long_period + 1}개 필요)",
            )

        closes = pd.Series(price_history, dtype=float)
        short_ma = closes.rolling(self.short_period).mean()
        long_ma = closes.rolling(self.long_period).mean()

        prev_gap = float(short_ma.iloc[-2] - long_ma.iloc[-2])
        gap = float(short_ma.iloc[-1] - long_ma.iloc[-1])
        gap_pct = abs(gap) / float(long_ma.iloc[-1]) if long_ma.iloc[-1] else 0.0

        trend = Trend.BULLISH if gap > 0 else Trend.BEARISH if gap < 0 else Trend.NEUTRAL
        indicators = TechnicalIndicators(trend=trend, sentiment=sentiment)
        confidence = float(self.params["base_confidence"]) + min(0.15, gap_pct * 10)

        if prev_gap <= 0 < gap:
            return AnalysisResult(
                decision=Decision.BUY,
                confidence=confidence,
                rationale=f"{symbol} 골든크로스 (MA{self.short_period} > MA{self.long_period})",
                indicators=indicators,
            )

        if prev_gap >= 0 > gap and held_quantity > 0:
            return AnalysisResult(
                decision=Decision.SELL,
                confidence=confidence,
                rationale=f"{symbol} 데드크로스 (MA{self.short_period} < MA{self.long_period})",
                indicators=indicators,
            )

        return AnalysisResult(
            decision=Decision.HOLD,
            confidence=0.5,
            rationale=f"{symbol} 교차 없음 (추세 {trend.value})",
            indicators=indicators,
        )
