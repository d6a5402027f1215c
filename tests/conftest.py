"""
테스트 공용 픽스처 및 스텁.

    FixedRandom       - 항상 같은 값을 돌려주는 난수원
    ScriptedProvider  - 종목별로 미리 정한 AnalysisResult를 돌려주는 분석 제공자
    RaisingProvider   - analyze() 자체가 예외를 던지는 제공자 (스윕 격리 확인용)
"""

import asyncio
from datetime import datetime

import pytest

from trading_desk.core.analysis_provider import AnalysisProvider, AnalysisResult, Decision
from trading_desk.data.instruments import AssetClass, Instrument
from trading_desk.data.portfolio import Portfolio
from trading_desk.data.price_series import PriceBook, PricePoint

T0 = datetime(2024, 1, 1, 9, 0, 0)


class FixedRandom:
    def __init__(self, value: float):
        self.value = value
        self.draws = 0

    def uniform(self, low: float, high: float) -> float:
        self.draws += 1
        return self.value


class ScriptedProvider(AnalysisProvider):
    """종목별 고정 응답 제공자. 호출 인자를 calls에 기록한다."""

    def __init__(self, results=None, errors=None, delay: float = 0.0, timeout: float = 10.0):
        super().__init__(name="scripted", timeout=timeout)
        self.results: dict[str, AnalysisResult] = results or {}
        self.errors: dict[str, Exception] = errors or {}
        self.delay = delay
        self.calls: list[dict] = []

    async def _analyze(self, symbol, price_history, cash, held_quantity, sentiment):
        self.calls.append({
            "symbol": symbol,
            "history": price_history,
            "cash": cash,
            "held": held_quantity,
            "sentiment": sentiment,
        })
        if symbol in self.errors:
            raise self.errors[symbol]
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.results.get(symbol, AnalysisResult(Decision.HOLD, 0.0, "no view"))


class RaisingProvider(ScriptedProvider):
    """fail-closed 래퍼를 우회하여 analyze()가 바로 예외를 던진다."""

    def __init__(self, failing: set[str], results=None):
        super().__init__(results=results)
        self.failing = failing

    async def analyze(self, symbol, price_history, cash, held_quantity, sentiment):
        if symbol in self.failing:
            raise RuntimeError(f"{symbol} feed down")
        return await super().analyze(symbol, price_history, cash, held_quantity, sentiment)


def buy(confidence: float = 0.9, rationale: str = "scripted buy", sources=()) -> AnalysisResult:
    return AnalysisResult(Decision.BUY, confidence, rationale, sources=tuple(sources))


def sell(confidence: float = 0.9, rationale: str = "scripted sell") -> AnalysisResult:
    return AnalysisResult(Decision.SELL, confidence, rationale)


@pytest.fixture
def instruments() -> list[Instrument]:
    return [
        Instrument("AAA", "Alpha Coin", 0.05, 100.0, AssetClass.CRYPTO),
        Instrument("BBB", "Beta Coin", 0.05, 100.0, AssetClass.CRYPTO),
        Instrument("GAS", "Natural Gas", 0.035, 2.0, AssetClass.COMMODITY),
    ]


@pytest.fixture
def make_book():
    """{symbol: [가격, ...]}으로 PriceBook 생성."""
    def _make(prices: dict[str, list[float]], max_length: int = 50) -> PriceBook:
        book = PriceBook(max_length=max_length)
        for symbol, series in prices.items():
            for price in series:
                book.append(symbol, PricePoint(T0, price))
        return book
    return _make


@pytest.fixture
def book(make_book) -> PriceBook:
    return make_book({
        "AAA": [100.0] * 5,
        "BBB": [100.0] * 5,
        "GAS": [2.0] * 5,
    })


@pytest.fixture
def portfolio(instruments) -> Portfolio:
    return Portfolio(10_000.0, symbols=[(i.symbol, i.name) for i in instruments])
