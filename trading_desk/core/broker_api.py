"""
브로커 어댑터 추상 클래스 정의.

[ 역할 ]
    외부 브로커와의 통신을 추상화하는 인터페이스 정의.
    코어는 연결 여부와 주문 성공/실패만 관찰하며, 세션 토큰 등은 어댑터 내부 상태.

[ 구현체 ]
    - brokers/mock_broker.py::MockBroker  (테스트/시뮬레이션용 스텁)

[ 호출하는 곳 ]
    - trading/execution_engine.py에서 실주문 전달 시 submit_trade() 호출
    - trading/desk.py::TradingDesk.connect_broker()/disconnect_broker()
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from trading_desk.data.portfolio import Side
from trading_desk.utils.config import BrokerConfig, ConfigError


@dataclass
class BrokerCredentials:
    """connect()에 전달되는 인증 정보."""
    api_key: str
    username: str
    password: str
    environment: str = "DEMO"   # "DEMO" or "LIVE"
    account_id: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: BrokerConfig) -> "BrokerCredentials":
        return cls(
            api_key=cfg.api_key,
            username=cfg.username,
            password=cfg.password,
            environment=cfg.environment,
            account_id=cfg.account_id,
        )

    def validate(self) -> None:
        """필수 항목 누락 시 ConfigError."""
        missing = [
            name for name in ("api_key", "username", "password")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigError(f"브로커 인증 정보 누락: {', '.join(missing)}")
        if self.environment.upper() not in ("DEMO", "LIVE"):
            raise ConfigError(f"알 수 없는 브로커 환경: {self.environment}")


class BrokerAPI(ABC):
    """브로커 어댑터 추상 클래스.

    모든 브로커 구현체는 이 클래스를 상속받아 아래 메서드를 구현해야 한다.
    timeout은 어댑터가 책임진다 (코어는 멈춘 어댑터를 기다리지 않는다).
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """세션 활성 여부."""
        ...

    @abstractmethod
    async def connect(self, credentials: BrokerCredentials) -> bool:
        """브로커 세션 연결."""
        ...

    @abstractmethod
    async def submit_trade(self, symbol: str, side: Side, size: float) -> bool:
        """주문 전달. 브로커가 거부하면 False.

        Args:
            symbol: 종목 코드
            side: 매수/매도
            size: 주문 수량
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """세션 해제."""
        ...
