"""
감시 스케줄러(Surveillance Scheduler) 모듈.

[ 역할 ]
    감시가 켜져 있는 동안 주기적으로 모든 추적 종목을 순회하며
    분석 제공자를 호출하고, 결정 게이트를 통과한 결정을 실행 엔진에 넘긴다.

[ 스윕 흐름 ]
    run_sweep() 호출 시:
        working_cash = 현재 현금 (이번 스윕 전용 누적 변수)
        종목별 (설정 순서 고정):
            ├── 가격 이력 < min_lookback → 건너뜀
            ├── provider.analyze(symbol, 이력, working_cash, 보유수량, 심리)
            ├── 근거 출처 병합 (uri 기준 중복 제거, 최대 max_sources개)
            ├── gate.evaluate() 통과 시 engine.execute_trade()
            └── 체결 결과로 working_cash 갱신 (매수 -금액 / 매도 +금액)
        종목 하나의 실패는 로그만 남기고 다음 종목으로 진행
        스윕 종료 후 지능 점수 += intelligence_step (상한 100)

[ working cash ]
    분석 제공자 호출을 await하는 동안 자동청산 등 다른 작업이 원장을 바꿀 수 있으므로,
    다음 종목의 게이트는 원장을 다시 읽지 않고 엔진이 반환한 체결로만 누적된 값을 쓴다.

[ 호출하는 곳 ]
    - trading/desk.py의 감시 주기 작업
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from trading_desk.core.analysis_provider import AnalysisProvider, SourceCitation
from trading_desk.data.instruments import Instrument
from trading_desk.data.portfolio import Portfolio, Side, TradeRecord
from trading_desk.data.price_series import PriceBook
from trading_desk.trading.decision_gate import DecisionGate
from trading_desk.trading.execution_engine import ExecutionEngine
from trading_desk.trading.session import SessionStatus

logger = logging.getLogger("trading_desk.surveillance")


@dataclass
class SweepReport:
    """run_sweep()의 반환값."""
    evaluated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    trades: list[TradeRecord] = field(default_factory=list)
    sources: list[SourceCitation] = field(default_factory=list)
    working_cash: float = 0.0


class SurveillanceScheduler:
    """감시 스케줄러."""

    def __init__(
        self,
        instruments: Iterable[Instrument],
        price_book: PriceBook,
        portfolio: Portfolio,
        provider: AnalysisProvider,
        gate: DecisionGate,
        engine: ExecutionEngine,
        min_lookback: int = 5,
        intelligence_step: float = 0.02,
    ):
        self.instruments = list(instruments)
        self.price_book = price_book
        self.portfolio = portfolio
        self.provider = provider
        self.gate = gate
        self.engine = engine
        self.min_lookback = min_lookback
        self.intelligence_step = intelligence_step

    async def run_sweep(self, status: SessionStatus, sentiment: str) -> SweepReport:
        """전체 종목 1회 순회."""
        status.last_action = "Surveillance global asset sweep..."
        logger.info("전체 종목 감시 스윕 시작")

        report = SweepReport(working_cash=self.portfolio.cash)
        found_sources: list[SourceCitation] = []

        for instrument in self.instruments:
            history = self.price_book.history(instrument.symbol)
            if len(history) < self.min_lookback:
                report.skipped.append(instrument.symbol)
                continue

            try:
                report.working_cash = await self._evaluate_instrument(
                    instrument, history, report, found_sources, status, sentiment,
                )
                report.evaluated.append(instrument.symbol)
            except Exception as e:
                report.failed.append(instrument.symbol)
                logger.error(f"{instrument.symbol} 분석 실패: {e}")

        report.sources = status.merge_sources(found_sources)
        status.nudge_intelligence(self.intelligence_step)
        status.last_action = "Surveillance active"
        logger.info(
            f"감시 스윕 완료: 분석 {len(report.evaluated)}, 건너뜀 {len(report.skipped)}, "
            f"실패 {len(report.failed)}, 체결 {len(report.trades)}"
        )
        return report

    async def _evaluate_instrument(
        self,
        instrument: Instrument,
        history: list[float],
        report: SweepReport,
        found_sources: list[SourceCitation],
        status: SessionStatus,
        sentiment: str,
    ) -> float:
        """종목 하나 분석 → 게이트 → 실행. 갱신된 working cash 반환."""
        working_cash = report.working_cash
        symbol = instrument.symbol
        held = self.portfolio.held_quantity(symbol)

        logger.debug(f"{symbol} 외부 데이터 수집 중...")
        result = await self.provider.analyze(symbol, history, working_cash, held, sentiment)
        found_sources.extend(result.sources)

        # await 이후 최신 상태로 판정
        price = self.price_book.latest_price(symbol)
        if price is None:
            return working_cash
        held = self.portfolio.held_quantity(symbol)

        verdict = self.gate.evaluate(result, instrument, price, working_cash, held)
        if not verdict.accepted:
            return working_cash

        if verdict.side == Side.BUY:
            status.current_thought = f"{symbol} 매수 신호 감지: {result.rationale}"
        else:
            status.current_thought = f"{symbol} 수익 실현 기회: {result.rationale}"
        status.last_action = f"Executing {verdict.side.value}: {symbol}"

        record = await self.engine.execute_trade(
            symbol, verdict.side, result.rationale, size_override=verdict.size,
        )
        if record is None:
            return working_cash

        report.trades.append(record)
        if record.side == Side.BUY:
            return working_cash - record.notional
        return working_cash + record.notional
