"""
시계(Clock)와 주기 작업(PeriodicTask) 모듈.

[ 역할 ]
    가격 생성, 평가/자동청산, 감시 스윕을 각각 독립된 주기 작업으로 실행.
    시계를 주입받으므로 테스트에서는 VirtualClock으로 가상 시간을 결정적으로 진행.

[ 포함 클래스 ]
    Clock        - now(), sleep() 인터페이스
    SystemClock  - 실제 시간 (asyncio.sleep, datetime.now)
    VirtualClock - 가상 시간. advance(seconds)로 잠든 작업을 순서대로 깨움
    PeriodicTask - interval마다 step()을 호출하는 asyncio 작업

[ 중지 규칙 ]
    is_active()가 False이면 해당 틱은 건너뛴다 (진행 중인 사이클은 끊지 않음).
    step()에서 예외가 나도 로그만 남기고 다음 틱은 계속 실행된다.
"""

import asyncio
import heapq
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("trading_desk.desk")


class Clock(ABC):
    """시계 인터페이스."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        ...


class SystemClock(Clock):
    """실제 시간 시계."""

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class VirtualClock(Clock):
    """테스트용 가상 시계.

    사용 예:
        clock = VirtualClock()
        task = PeriodicTask("prices", 3.0, step, clock)
        task.start()
        await clock.advance(9.0)   # step 3회 실행
    """

    # 깨어난 작업이 다음 await 지점까지 진행하도록 양보하는 횟수
    SETTLE_ROUNDS = 20

    def __init__(self, start: datetime | None = None):
        self._start = start or datetime(2024, 1, 1, 9, 0, 0)
        self._elapsed = 0.0
        self._sleepers: list[tuple[float, int, asyncio.Future]] = []
        self._seq = 0

    @property
    def elapsed(self) -> float:
        return self._elapsed

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._elapsed + max(seconds, 0.0), self._seq, future))
        self._seq += 1
        await future

    async def advance(self, seconds: float) -> None:
        """가상 시간을 진행. 기상 시각이 지난 작업을 시각 순서대로 깨운다."""
        target = self._elapsed + seconds
        await self._settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            wake_at, _, future = heapq.heappop(self._sleepers)
            self._elapsed = max(self._elapsed, wake_at)
            if not future.done():
                future.set_result(None)
            await self._settle()
        self._elapsed = target

    async def _settle(self) -> None:
        for _ in range(self.SETTLE_ROUNDS):
            await asyncio.sleep(0)


class PeriodicTask:
    """interval마다 step()을 호출하는 주기 작업."""

    def __init__(
        self,
        name: str,
        interval: float,
        step: Callable[[], Awaitable[None]],
        clock: Clock,
        is_active: Callable[[], bool] | None = None,
    ):
        self.name = name
        self.interval = interval
        self.step = step
        self.clock = clock
        self.is_active = is_active or (lambda: True)
        self.runs = 0
        self.errors = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await self.clock.sleep(self.interval)
            if not self.is_active():
                continue
            try:
                await self.step()
                self.runs += 1
            except Exception:
                self.errors += 1
                logger.exception(f"{self.name} 작업 실패, 다음 틱에서 재시도")
