"""
가격 이력 관리 모듈.

[ 역할 ]
    종목별 PricePoint를 최대 N개까지 보관하는 PriceSeries와,
    전체 종목의 시리즈를 묶어 조회 편의 메서드를 제공하는 PriceBook.

[ 불변 조건 ]
    - 시리즈는 삽입 순서를 유지하고, 길이 초과 시 가장 오래된 포인트부터 제거
    - 초기가격으로 시드된 이후 시리즈는 절대 비어 있지 않음

[ 호출하는 곳 ]
    - market/price_synthesizer.py가 유일한 쓰기 주체 (append)
    - 나머지 컴포넌트는 latest_price(), history(), as_frame()으로 읽기만 함
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from trading_desk.data.instruments import Instrument


@dataclass(frozen=True)
class PricePoint:
    """(시각, 가격) 한 쌍."""
    timestamp: datetime
    price: float


class PriceSeries:
    """길이 제한이 있는 종목별 가격 시리즈."""

    def __init__(self, symbol: str, max_length: int = 50):
        if max_length < 1:
            raise ValueError("max_length는 1 이상이어야 합니다.")
        self.symbol = symbol
        self.max_length = max_length
        self._points: deque[PricePoint] = deque(maxlen=max_length)

    def append(self, point: PricePoint) -> None:
        self._points.append(point)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self):
        return iter(self._points)

    @property
    def points(self) -> list[PricePoint]:
        return list(self._points)

    @property
    def latest(self) -> Optional[PricePoint]:
        return self._points[-1] if self._points else None

    def prices(self) -> list[float]:
        return [p.price for p in self._points]


class PriceBook:
    """전체 종목의 PriceSeries 묶음.

    사용 예:
        book = PriceBook.seeded(instruments, max_length=50, timestamp=now)
        book.latest_price("BTC")
        df = book.as_frame("BTC")
    """

    def __init__(self, max_length: int = 50):
        self.max_length = max_length
        self._series: dict[str, PriceSeries] = {}  # symbol → PriceSeries

    @classmethod
    def seeded(
        cls,
        instruments: Iterable[Instrument],
        max_length: int,
        timestamp: datetime,
    ) -> "PriceBook":
        """각 종목을 초기가격 한 포인트로 시드한 PriceBook 생성."""
        book = cls(max_length=max_length)
        for inst in instruments:
            book.append(inst.symbol, PricePoint(timestamp, inst.initial_price))
        return book

    def append(self, symbol: str, point: PricePoint) -> None:
        if symbol not in self._series:
            self._series[symbol] = PriceSeries(symbol, self.max_length)
        self._series[symbol].append(point)

    def series(self, symbol: str) -> Optional[PriceSeries]:
        return self._series.get(symbol)

    def symbols(self) -> list[str]:
        return list(self._series.keys())

    def latest_price(self, symbol: str) -> Optional[float]:
        """최신 가격. 시리즈가 없으면 None."""
        series = self._series.get(symbol)
        if series is None or series.latest is None:
            return None
        return series.latest.price

    def latest_prices(self) -> dict[str, float]:
        return {
            symbol: series.latest.price
            for symbol, series in self._series.items()
            if series.latest is not None
        }

    def history(self, symbol: str) -> list[float]:
        series = self._series.get(symbol)
        return series.prices() if series else []

    def as_frame(self, symbol: str) -> pd.DataFrame:
        """가격 이력을 DataFrame으로 반환 (columns: timestamp, close)."""
        series = self._series.get(symbol)
        if series is None:
            return pd.DataFrame(columns=["timestamp", "close"])
        return pd.DataFrame(
            [{"timestamp": p.timestamp, "close": p.price} for p in series],
            columns=["timestamp", "close"],
        )
