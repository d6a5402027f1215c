"""
합성 가격 생성 모듈.

[ 역할 ]
    고정 주기마다 추적 종목별로 새 가격 틱을 생성하여 PriceBook에 추가.
    통계적으로 현실적인 시장 모델이 아닌 단순 확률 보행(random walk).

[ 계산식 ]
    bias = (sentiment - 50) / K
    next = max(min_price, last + last * (volatility + bias) * U)
    U ~ uniform(-0.5, 0.5)  (주입된 난수원에서 추출)

[ 특성 ]
    - 가격 하한(min_price)으로 항상 양수 보장, 어떤 추출값에도 멈추지 않음
    - 난수원을 주입받으므로 시드 고정 시 재현 가능

[ 호출하는 곳 ]
    - trading/desk.py::TradingDesk의 가격 틱 주기 작업에서 tick() 호출
"""

import logging
from typing import Iterable, Protocol

import numpy as np

from trading_desk.data.instruments import Instrument
from trading_desk.data.price_series import PriceBook, PricePoint
from trading_desk.trading.clock import Clock, SystemClock

logger = logging.getLogger("trading_desk.market")

NEUTRAL_SENTIMENT = 50.0


class RandomSource(Protocol):
    """uniform(low, high)만 제공하면 되는 난수원 (numpy Generator 호환)."""

    def uniform(self, low: float, high: float) -> float:
        ...


def sentiment_label(value: float) -> str:
    """심리 지수(0~100)를 라벨로 변환."""
    if value > 60:
        return "BULLISH"
    if value < 40:
        return "BEARISH"
    return "NEUTRAL"


class PriceSynthesizer:
    """합성 가격 생성기.

    사용법:
        synth = PriceSynthesizer(instruments, book, rng=np.random.default_rng(42))
        prices = synth.tick(sentiment_value=55)
    """

    def __init__(
        self,
        instruments: Iterable[Instrument],
        price_book: PriceBook,
        rng: RandomSource | None = None,
        min_price: float = 0.01,
        sentiment_divisor: float = 1500.0,
        clock: Clock | None = None,
    ):
        self.instruments = list(instruments)
        self.price_book = price_book
        self.rng = rng if rng is not None else np.random.default_rng()
        self.min_price = min_price
        self.sentiment_divisor = sentiment_divisor
        self.clock = clock or SystemClock()

    def sentiment_bias(self, sentiment_value: float) -> float:
        return (sentiment_value - NEUTRAL_SENTIMENT) / self.sentiment_divisor

    def next_price(self, last_price: float, volatility: float, sentiment_value: float) -> float:
        """직전 가격에서 다음 가격 계산."""
        draw = float(self.rng.uniform(-0.5, 0.5))
        change = last_price * (volatility + self.sentiment_bias(sentiment_value)) * draw
        return max(self.min_price, last_price + change)

    def tick(self, sentiment_value: float = NEUTRAL_SENTIMENT) -> dict[str, float]:
        """모든 종목에 대해 새 가격 틱 생성. {symbol: 새 가격} 반환."""
        now = self.clock.now()
        prices: dict[str, float] = {}
        for inst in self.instruments:
            last = self.price_book.latest_price(inst.symbol)
            if last is None:
                last = inst.initial_price
            new_price = self.next_price(last, inst.volatility, sentiment_value)
            self.price_book.append(inst.symbol, PricePoint(now, new_price))
            prices[inst.symbol] = new_price
        logger.debug(f"가격 틱: {prices}")
        return prices
