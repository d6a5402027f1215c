"""
RSI + 이동평균 추세 기반 분석 제공자.

[ 역할 ]
    core/analysis_provider.py::AnalysisProvider의 구현체.
    외부 호출 없이 가격 이력만으로 결정/신뢰도/근거를 만든다.

[ 판단 흐름 ]
    analyze() 호출됨 (← trading/surveillance.py에서)
        ├── RSI, 이동평균, 추세(BULLISH/BEARISH/NEUTRAL) 계산
        ├── 보유 중이면 매도 먼저 체크
        │     └── RSI >= overbought 또는 추세 BEARISH → SELL
        └── 매수 체크
              └── RSI <= oversold 또는 (추세 BULLISH + 시장 심리 BULLISH) → BUY

[ 신뢰도 ]
    0.55 + 0.35 * |RSI - 50| / 50, 시장 심리와 방향이 같으면 +0.1

[ 파라미터 (config.yaml의 provider 섹션에서 로드) ]
    rsi_period:   RSI 기간
    ma_period:    이동평균 기간
    oversold:     과매도 RSI 기준
    overbought:   과매수 RSI 기준
    trend_band:   추세 판단 밴드 (이동평균 대비 비율)
    target_pct:   목표가 (현재가 대비 비율)
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


def compute_rsi(closes: pd.Series, period: int) -> float:
    """단순 평균 방식 RSI. 변동이 없으면 50."""
    delta = closes.diff().dropna()
    if delta.empty:
        return 50.0
    recent = delta.tail(period)
    gain = float(recent.clip(lower=0).mean())
    loss = float((-recent.clip(upper=0)).mean())
    if loss == 0:
        return 100.0 if gain > 0 else 50.0
    rs = gain / loss
    return 100 - 100 / (1 + rs)


@register("technical")
class TechnicalAnalysisProvider(AnalysisProvider):
    """RSI + 이동평균 추세 제공자."""

    DEFAULT_PARAMS = {
        "rsi_period": 14,
        "ma_period": 10,
        "oversold": 30.0,
        "overbought": 70.0,
        "trend_band": 0.002,
        "target_pct": 0.02,
    }

    def __init__(self, params: dict[str, Any] | None = None, timeout: float = 10.0):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="technical", params=merged, timeout=timeout)

    @property
    def rsi_period(self) -> int:
        return int(self.params["rsi_period"])

    @property
    def ma_period(self) -> int:
        return int(self.params["ma_period"])

    @property
    def oversold(self) -> float:
        return float(self.params["oversold"])

    @property
    def overbought(self) -> float:
        return float(self.params["overbought"])

    def classify_trend(self, price: float, ma_value: float) -> Trend:
        band = float(self.params["trend_band"])
        if price > ma_value * (1 + band):
            return Trend.BULLISH
        if price < ma_value * (1 - band):
            return Trend.BEARISH
        return Trend.NEUTRAL

    async def _analyze(
        self,
        symbol: str,
        price_history: list[float],
        cash: float,
        held_quantity: float,
        sentiment: str,
    ) -> AnalysisResult:
        if len(price_history) < 2:
            return AnalysisResult(
                decision=Decision.HOLD,
                confidence=0.0,
                rationale="데이터 부족 (최소 2개 가격 필요)",
            )

        closes = pd.Series(price_history, dtype=float)
        price = float(closes.iloc[-1])
        rsi = compute_rsi(closes, self.rsi_period)
        ma_value = float(closes.tail(self.ma_period).mean())
        trend = self.classify_trend(price, ma_value)
        indicators = TechnicalIndicators(rsi=round(rsi, 2), trend=trend, sentiment=sentiment)

        strength = abs(rsi - 50) / 50
        confidence = 0.55 + 0.35 * strength

        # 매도를 먼저 체크 → 보유분 수익 보호
        if held_quantity > 0 and (rsi >= self.overbought or trend == Trend.BEARISH):
            if sentiment == "BEARISH":
                confidence += 0.1
            return AnalysisResult(
                decision=Decision.SELL,
                confidence=confidence,
                rationale=f"{symbol} RSI {rsi:.1f}, 추세 {trend.value} (MA {ma_value:,.4g}) → 매도",
                indicators=indicators,
            )

        if rsi <= self.oversold or (trend == Trend.BULLISH and sentiment == "BULLISH"):
            if sentiment == "BULLISH":
                confidence += 0.1
            return AnalysisResult(
                decision=Decision.BUY,
                confidence=confidence,
                rationale=f"{symbol} RSI {rsi:.1f}, 추세 {trend.value} (MA {ma_value:,.4g}) → 매수",
                indicators=indicators,
                target_price=price * (1 + float(self.params["target_pct"])),
            )

        return AnalysisResult(
            decision=Decision.HOLD,
            confidence=confidence,
            rationale=f"{symbol} 뚜렷한 신호 없음 (RSI {rsi:.1f}, 추세 {trend.value})",
            indicators=indicators,
        )
