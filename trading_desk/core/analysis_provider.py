"""
분석 제공자(Analysis Provider) 추상 클래스 정의.

[ 역할 ]
    종목의 최근 가격 이력과 현재 현금/보유 수량을 받아
    매수/매도/홀드 결정, 신뢰도, 근거를 반환하는 인터페이스.

[ 실패 계약 (fail-closed) ]
    공개 메서드 analyze()는 절대 예외를 올리지 않는다.
    구현체의 _analyze()가 예외를 던지거나 timeout을 넘기면
    AnalysisResult.fail_closed()(HOLD, 신뢰도 0)를 정상 값으로 반환한다.

[ 구현체 ]
    - providers/technical_provider.py::TechnicalAnalysisProvider (RSI + 이동평균 추세)
    - providers/ma_cross_provider.py::MACrossProvider (단기/장기 이동평균 교차)
    - LLM 기반 제공자 등 외부 구현체도 _analyze()만 구현하면 됨

[ 호출하는 곳 ]
    - trading/surveillance.py::SurveillanceScheduler.run_sweep()에서 종목별로 호출
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

logger = logging.getLogger("trading_desk.providers")


class Decision(Enum):
    """분석 제공자가 반환하는 결정 종류."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Trend(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class SourceCitation:
    """분석 근거 출처. uri가 식별자."""
    title: str
    uri: str


@dataclass(frozen=True)
class TechnicalIndicators:
    rsi: float = 50.0
    trend: Trend = Trend.NEUTRAL
    sentiment: str = "UNKNOWN"


@dataclass(frozen=True)
class AnalysisResult:
    """analyze()의 반환값. 한 사이클의 결정 하나를 구동하고 버려짐."""
    decision: Decision
    confidence: float
    rationale: str = ""
    indicators: TechnicalIndicators = field(default_factory=TechnicalIndicators)
    target_price: Optional[float] = None
    sources: tuple[SourceCitation, ...] = ()

    def __post_init__(self) -> None:
        # 신뢰도는 [0, 1]로 클램프
        object.__setattr__(self, "confidence", min(1.0, max(0.0, float(self.confidence))))

    @classmethod
    def fail_closed(cls, reason: str) -> "AnalysisResult":
        """내부 오류 시 반환하는 안전한 기본값 (HOLD, 신뢰도 0)."""
        return cls(
            decision=Decision.HOLD,
            confidence=0.0,
            rationale=f"안전 프로토콜: {reason}. 현재 포지션을 유지합니다.",
            indicators=TechnicalIndicators(rsi=50.0, trend=Trend.NEUTRAL, sentiment="UNKNOWN"),
        )


class AnalysisProvider(ABC):
    """분석 제공자 추상 클래스.

    새 제공자를 만들려면 이 클래스를 상속받아 _analyze()를 구현하면 된다.
    timeout과 예외 처리는 analyze()가 담당한다.
    """

    def __init__(self, name: str, params: dict[str, Any] | None = None, timeout: float = 10.0):
        self.name = name
        self.params = params or {}  # config.yaml에서 로드된 제공자 파라미터
        self.timeout = timeout

    async def analyze(
        self,
        symbol: str,
        price_history: Sequence[float],
        cash: float,
        held_quantity: float,
        sentiment: str,
    ) -> AnalysisResult:
        """종목 분석. 어떤 경우에도 예외 없이 AnalysisResult를 반환.

        Args:
            symbol: 종목 코드
            price_history: 최근 가격 이력 (오래된 것부터)
            cash: 사용 가능 현금 (사이클 내 체결 반영된 working cash)
            held_quantity: 현재 보유 수량
            sentiment: 전역 시장 심리 라벨 (BULLISH/BEARISH/NEUTRAL)
        """
        try:
            return await asyncio.wait_for(
                self._analyze(symbol, list(price_history), cash, held_quantity, sentiment),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{self.name}: {symbol} 분석 시간 초과 ({self.timeout}s)")
            return AnalysisResult.fail_closed("분석 시간 초과")
        except Exception as e:
            logger.warning(f"{self.name}: {symbol} 분석 실패: {e}")
            return AnalysisResult.fail_closed("분석 중 오류 발생")

    @abstractmethod
    async def _analyze(
        self,
        symbol: str,
        price_history: list[float],
        cash: float,
        held_quantity: float,
        sentiment: str,
    ) -> AnalysisResult:
        """실제 분석 로직. 예외를 던져도 analyze()가 fail-closed로 처리한다."""
        ...
