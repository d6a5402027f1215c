"""
테스트/시뮬레이션용 Mock 브로커 구현.

[ 역할 ]
    실제 증권사 API 없이 브로커 세션과 주문 전달을 흉내내는 스텁.
    체결 가격/잔고는 관리하지 않으며, 성공/실패만 반환한다.

[ 동작 ]
    connect()      - 인증 정보 검증 후 가짜 세션 토큰 발급 (누락 시 ConfigError)
    submit_trade() - 세션이 없거나 reject_symbols에 포함된 종목이면 False
                     그 외에는 주문 원장에 기록 후 True
    latency        - 응답 지연 시뮬레이션 (초). timeout을 넘기면 실패로 처리

[ 호출하는 곳 ]
    - trading/desk.py에서 기본 브로커로 사용
    - 단위 테스트에서 거부 시나리오 재현 (reject_symbols, accept_orders)
"""

import asyncio
import logging
import uuid
from typing import Any, Optional

from trading_desk.core.broker_api import BrokerAPI, BrokerCredentials
from trading_desk.data.portfolio import Side

logger = logging.getLogger("trading_desk.broker")


class MockBroker(BrokerAPI):
    """Mock 브로커. 실제 주문 없이 세션/주문 전달만 시뮬레이션.

    사용법:
        broker = MockBroker(latency=0.8)
        await broker.connect(credentials)
        ok = await broker.submit_trade("BTC", Side.BUY, 0.05)
    """

    def __init__(
        self,
        latency: float = 0.0,
        timeout: float = 5.0,
        reject_symbols: set[str] | None = None,
        accept_orders: bool = True,
    ):
        self.latency = latency
        self.timeout = timeout
        self.reject_symbols = set(reject_symbols or ())
        self.accept_orders = accept_orders

        self.environment: Optional[str] = None
        self._session: Optional[dict[str, str]] = None
        self.orders: dict[str, dict[str, Any]] = {}  # order_id → payload

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    async def connect(self, credentials: BrokerCredentials) -> bool:
        credentials.validate()
        try:
            await asyncio.wait_for(self._simulate_latency(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("브로커 인증 시간 초과")
            return False

        self.environment = credentials.environment.upper()
        self._session = {
            "cst": f"mock_cst_{uuid.uuid4().hex[:12]}",
            "security_token": f"mock_sec_{uuid.uuid4().hex[:12]}",
        }
        logger.info(f"브로커 연결: {credentials.username} ({self.environment})")
        return True

    async def submit_trade(self, symbol: str, side: Side, size: float) -> bool:
        if self._session is None:
            return False

        try:
            await asyncio.wait_for(self._simulate_latency(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"주문 전달 시간 초과: {side.value} {symbol}")
            return False

        if not self.accept_orders or symbol in self.reject_symbols:
            return False

        order_id = str(uuid.uuid4())[:8]
        self.orders[order_id] = {
            "symbol": symbol,
            "side": side.value,
            "size": size,
            "environment": self.environment,
        }
        logger.info(f"[{self.environment}] 주문 전달: {side.value} {symbol} x {size}")
        return True

    async def disconnect(self) -> None:
        self._session = None
        self.environment = None

    async def _simulate_latency(self) -> None:
        await asyncio.sleep(self.latency)
