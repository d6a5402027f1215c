"""
트레이딩 데스크(오케스트레이터) 모듈.

[ 역할 ]
    세션 하나의 모든 컴포넌트를 소유하고 세 개의 주기 작업을 구동.
    사용자 동작(감시 on/off, 심리 조정, 브로커 연결, 브리핑, 스냅샷)의 진입점.

[ 주기 작업 ]
    prices     (tick_interval)     → PriceSynthesizer.tick()
    marks      (mark_interval)     → Portfolio.mark_to_market() → (감시 중이면) AutoExitMonitor.check()
    surveillance (analysis_interval) → (감시 중이면) SurveillanceScheduler.run_sweep()

[ 실행 흐름 ]
    desk = TradingDesk(config)
    await desk.start()            # 가격 생성 시작
    desk.start_monitoring()       # 자동청산 + 감시 스윕 활성화
    ...
    desk.stop_monitoring()        # 다음 틱부터 새 사이클 시작 안 함
    await desk.shutdown()

[ 의존성 ]
    - market/price_synthesizer.py, data/portfolio.py, trading/*.py
    - core/*의 추상 인터페이스 (분석/브리핑 제공자, 브로커)
"""

import logging
from collections import deque
from typing import Optional

import numpy as np

from trading_desk.brokers.mock_broker import MockBroker
from trading_desk.core.analysis_provider import AnalysisProvider
from trading_desk.core.briefing_provider import BriefingProvider, DailyReport
from trading_desk.core.broker_api import BrokerAPI, BrokerCredentials
from trading_desk.data.instruments import Instrument, TradeSizes
from trading_desk.data.portfolio import Portfolio
from trading_desk.data.price_series import PriceBook
from trading_desk.market.price_synthesizer import PriceSynthesizer, RandomSource, sentiment_label
from trading_desk.providers import create_provider
from trading_desk.reporting.briefing import SessionBriefingProvider
from trading_desk.reporting.snapshot import DeskSnapshot, build_snapshot
from trading_desk.trading.auto_exit import AutoExitMonitor
from trading_desk.trading.clock import Clock, PeriodicTask, SystemClock
from trading_desk.trading.decision_gate import DecisionGate
from trading_desk.trading.execution_engine import ExecutionEngine
from trading_desk.trading.session import SessionStatus
from trading_desk.trading.surveillance import SurveillanceScheduler, SweepReport
from trading_desk.utils.config import ConfigError, DeskConfig

logger = logging.getLogger("trading_desk.desk")

EQUITY_CURVE_LIMIT = 5000


class TradingDesk:
    """시뮬레이션 트레이딩 데스크."""

    def __init__(
        self,
        config: DeskConfig | None = None,
        provider: AnalysisProvider | None = None,
        broker: BrokerAPI | None = None,
        briefing_provider: BriefingProvider | None = None,
        clock: Clock | None = None,
        rng: RandomSource | None = None,
    ):
        self.config = config or DeskConfig()
        sim = self.config.simulation
        trading = self.config.trading

        self.clock = clock or SystemClock()
        self.instruments = [Instrument.from_config(c) for c in self.config.instruments]
        self.trade_sizes = TradeSizes(
            crypto=trading.crypto_trade_size,
            commodity=trading.commodity_trade_size,
        )
        self.sentiment = float(sim.initial_sentiment)

        self.status = SessionStatus(
            intelligence_level=trading.initial_intelligence,
            max_sources=trading.max_sources,
        )
        self.price_book = PriceBook.seeded(self.instruments, sim.max_history, self.clock.now())
        self.portfolio = Portfolio(
            trading.initial_cash,
            symbols=[(i.symbol, i.name) for i in self.instruments],
        )
        self.portfolio.mark_to_market(self.price_book.latest_prices())

        self.synthesizer = PriceSynthesizer(
            self.instruments,
            self.price_book,
            rng=rng if rng is not None else np.random.default_rng(sim.seed),
            min_price=sim.min_price,
            sentiment_divisor=sim.sentiment_divisor,
            clock=self.clock,
        )
        self.provider = provider or create_provider(
            self.config.provider.name,
            params=self.config.provider.params,
            timeout=self.config.provider.timeout,
        )
        self.broker = broker or MockBroker(latency=self.config.broker.latency)
        self.briefing_provider = briefing_provider or SessionBriefingProvider(
            profit_target=trading.profit_target,
        )

        self.engine = ExecutionEngine(
            self.portfolio,
            self.price_book,
            self.instruments,
            trade_sizes=self.trade_sizes,
            broker=self.broker,
            live_trading=trading.live_trading,
            clock=self.clock,
            trade_log_limit=trading.trade_log_limit,
            status=self.status,
        )
        self.gate = DecisionGate(trading.confidence_threshold, self.trade_sizes)
        self.auto_exit = AutoExitMonitor(self.portfolio, self.engine, trading.profit_target)
        self.scheduler = SurveillanceScheduler(
            self.instruments,
            self.price_book,
            self.portfolio,
            self.provider,
            self.gate,
            self.engine,
            min_lookback=trading.min_lookback,
            intelligence_step=trading.intelligence_step,
        )

        self.equity_curve: deque[float] = deque([self.portfolio.total_equity], maxlen=EQUITY_CURVE_LIMIT)
        self.last_sweep: Optional[SweepReport] = None
        self._tasks = [
            PeriodicTask("prices", sim.tick_interval, self.tick_prices, self.clock),
            PeriodicTask("marks", sim.mark_interval, self.mark_to_market, self.clock),
            PeriodicTask(
                "surveillance",
                sim.analysis_interval,
                self.run_sweep,
                self.clock,
                is_active=lambda: self.status.monitoring,
            ),
        ]

    # ─── 상태 조회 ──────────────────────────────────────────────────────────

    @property
    def sentiment_label(self) -> str:
        return sentiment_label(self.sentiment)

    @property
    def running(self) -> bool:
        return any(t.running for t in self._tasks)

    @property
    def tasks(self) -> list[PeriodicTask]:
        return list(self._tasks)

    # ─── 주기 작업 단계 ─────────────────────────────────────────────────────

    async def tick_prices(self) -> dict[str, float]:
        """가격 틱 1회."""
        return self.synthesizer.tick(self.sentiment)

    async def mark_to_market(self) -> None:
        """평가 가격 갱신 후, 감시 중이면 자동청산 점검."""
        self.portfolio.mark_to_market(self.price_book.latest_prices())
        self.equity_curve.append(self.portfolio.total_equity)
        if self.status.monitoring:
            await self.auto_exit.check()

    async def run_sweep(self) -> SweepReport:
        """감시 스윕 1회."""
        self.last_sweep = await self.scheduler.run_sweep(self.status, self.sentiment_label)
        return self.last_sweep

    # ─── 수명 주기 ──────────────────────────────────────────────────────────

    async def start(self) -> None:
        """주기 작업 시작. 가격 생성과 평가는 감시 여부와 무관하게 돈다."""
        for task in self._tasks:
            task.start()
        logger.info(f"데스크 시작: {len(self.instruments)}개 종목, 초기 현금 {self.portfolio.initial_cash:,.2f}")

    async def shutdown(self) -> None:
        """모든 주기 작업 취소."""
        self.status.monitoring = False
        for task in self._tasks:
            await task.stop()
        logger.info("데스크 종료")

    async def run(self, duration: float) -> None:
        """duration초 동안 감시 모드로 실행 후 종료 (CLI용)."""
        await self.start()
        self.start_monitoring()
        try:
            await self.clock.sleep(duration)
        finally:
            await self.shutdown()

    # ─── 사용자 동작 ────────────────────────────────────────────────────────

    def start_monitoring(self) -> None:
        self.status.monitoring = True
        self.status.last_action = "Monitoring engaged"
        logger.info("감시 시작: 다중 자산 스트림 초기화")

    def stop_monitoring(self) -> None:
        self.status.monitoring = False
        self.status.last_action = "Standing down"
        logger.warning("감시 중지")

    def toggle_monitoring(self) -> bool:
        if self.status.monitoring:
            self.stop_monitoring()
        else:
            self.start_monitoring()
        return self.status.monitoring

    def set_sentiment(self, value: float) -> float:
        """시장 심리 지수 설정 (0~100으로 클램프)."""
        self.sentiment = min(100.0, max(0.0, float(value)))
        return self.sentiment

    def set_live_trading(self, enabled: bool) -> None:
        self.engine.set_live_trading(enabled)

    async def connect_broker(self, credentials: BrokerCredentials | None = None) -> bool:
        """브로커 연결. 인증 정보 누락 등은 False로 보고하고 시뮬레이션은 계속된다."""
        creds = credentials or BrokerCredentials.from_config(self.config.broker)
        try:
            connected = await self.broker.connect(creds)
        except ConfigError as e:
            self.status.last_error = str(e)
            logger.error(f"브로커 인증 실패: {e}")
            return False
        except Exception as e:
            self.status.last_error = str(e)
            logger.error(f"브로커 연결 오류: {e}")
            return False

        if connected:
            self.status.last_error = None
            logger.info(f"브로커 게이트웨이 승인: {creds.environment}")
        else:
            logger.error("브로커 인증 실패")
        return connected

    async def disconnect_broker(self) -> None:
        await self.broker.disconnect()
        logger.info("브로커 연결 해제")

    async def generate_briefing(self) -> Optional[DailyReport]:
        """일일 브리핑 생성. 거래가 없으면 None, 제공자 실패 시 대체 리포트."""
        trades = self.engine.recent_trades()
        if not trades:
            logger.warning("브리핑에 필요한 거래 데이터가 없습니다.")
            return None

        pnl = self.portfolio.total_pnl
        today = self.clock.now().date()
        try:
            report = await self.briefing_provider.summarize(trades, pnl, on=today)
        except Exception as e:
            logger.error(f"브리핑 생성 실패, 대체 리포트 사용: {e}")
            return DailyReport.placeholder(pnl, on=today)
        logger.info("브리핑 생성 완료")
        return report

    def snapshot(self) -> DeskSnapshot:
        """내보내기용 읽기 전용 스냅샷."""
        return build_snapshot(
            self.portfolio,
            self.engine.trades,
            list(self.equity_curve),
            taken_at=self.clock.now(),
        )
