"""
결정 게이트(Decision Gate) 모듈.

[ 역할 ]
    분석 결과를 신뢰도 임계값과 현금/보유 수량 조건으로 필터링하고,
    통과한 결정을 체결 요청(방향 + 수량)으로 변환.

[ 통과 조건 ]
    - confidence > confidence_threshold (같으면 거부)
    - BUY : working_cash >= price * 기본 수량
    - SELL: 보유 수량 > 0
    - HOLD 또는 조건 미달은 정상적인 필터링 결과 (에러 아님, DEBUG 로그만)

[ 호출하는 곳 ]
    - trading/surveillance.py::SurveillanceScheduler._evaluate_instrument()
"""

import logging
from dataclasses import dataclass
from typing import Optional

from trading_desk.core.analysis_provider import AnalysisResult, Decision
from trading_desk.data.instruments import Instrument, TradeSizes
from trading_desk.data.portfolio import QTY_EPSILON, Side

logger = logging.getLogger("trading_desk.surveillance")


@dataclass(frozen=True)
class GateVerdict:
    """evaluate()의 반환값."""
    accepted: bool
    side: Optional[Side] = None
    size: float = 0.0
    reason: str = ""


class DecisionGate:
    """결정 게이트."""

    def __init__(self, confidence_threshold: float = 0.82, trade_sizes: TradeSizes | None = None):
        self.confidence_threshold = confidence_threshold
        self.trade_sizes = trade_sizes or TradeSizes()

    def evaluate(
        self,
        result: AnalysisResult,
        instrument: Instrument,
        price: float,
        working_cash: float,
        held_quantity: float,
    ) -> GateVerdict:
        """분석 결과 판정.

        Args:
            result: 분석 제공자 결과
            instrument: 대상 종목
            price: 현재 평가 가격
            working_cash: 이번 사이클에서 앞선 체결이 반영된 현금
            held_quantity: 현재 보유 수량
        """
        verdict = self._evaluate(result, instrument, price, working_cash, held_quantity)
        if not verdict.accepted:
            logger.debug(f"{instrument.symbol} 게이트 미통과: {verdict.reason}")
        return verdict

    def _evaluate(
        self,
        result: AnalysisResult,
        instrument: Instrument,
        price: float,
        working_cash: float,
        held_quantity: float,
    ) -> GateVerdict:
        if result.confidence <= self.confidence_threshold:
            return GateVerdict(
                accepted=False,
                reason=f"신뢰도 부족 ({result.confidence:.2f} <= {self.confidence_threshold:.2f})",
            )

        size = self.trade_sizes.default_size(instrument)

        if result.decision == Decision.BUY:
            cost = price * size
            if working_cash < cost:
                return GateVerdict(accepted=False, reason=f"현금 부족 ({working_cash:,.2f} < {cost:,.2f})")
            return GateVerdict(accepted=True, side=Side.BUY, size=size, reason=result.rationale)

        if result.decision == Decision.SELL:
            if held_quantity <= QTY_EPSILON:
                return GateVerdict(accepted=False, reason="보유 수량 없음")
            return GateVerdict(accepted=True, side=Side.SELL, size=size, reason=result.rationale)

        return GateVerdict(accepted=False, reason="HOLD")
