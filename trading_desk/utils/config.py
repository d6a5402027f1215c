"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 DeskConfig 객체로 변환.
    추적 종목, 시뮬레이션 주기, 매매 파라미터, 분석 제공자, 브로커 설정 등을 통합 관리.

[ 설정 파일 구조 (config.yaml) ]
    instruments:      → list[InstrumentConfig] (추적 종목)
    simulation:       → SimulationConfig (틱/분석 주기, 가격 이력 길이)
    trading:          → TradingConfig (신뢰도 임계값, 목표수익, 기본 주문 수량)
    provider:         → ProviderConfig (분석 제공자 이름/파라미터)
    broker:           → BrokerConfig (브로커 인증 정보)
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로

[ 호출하는 곳 ]
    - run_desk.py에서 DeskConfig.from_yaml()로 로드
    - trading/desk.py::TradingDesk 생성자에서 각 컴포넌트 생성 시 사용
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class ConfigError(ValueError):
    """잘못된 세션 설정 또는 누락된 인증 정보."""


ASSET_CLASSES = ("crypto", "commodity")


@dataclass
class InstrumentConfig:
    """종목 설정. config.yaml의 instruments 항목 하나에 대응."""
    symbol: str
    name: str = ""
    volatility: float = 0.05
    initial_price: float = 100.0
    asset_class: str = "crypto"   # "crypto" or "commodity"


def default_instruments() -> list[InstrumentConfig]:
    """기본 추적 종목 (암호화폐 5종 + 천연가스)."""
    return [
        InstrumentConfig("BTC", "Bitcoin", 0.04, 65420.00, "crypto"),
        InstrumentConfig("ETH", "Ethereum", 0.05, 3450.50, "crypto"),
        InstrumentConfig("NATGAS", "Natural Gas", 0.035, 2.15, "commodity"),
        InstrumentConfig("SOL", "Solana", 0.08, 145.20, "crypto"),
        InstrumentConfig("LINK", "Chainlink", 0.06, 18.40, "crypto"),
        InstrumentConfig("ADA", "Cardano", 0.07, 0.45, "crypto"),
    ]


@dataclass
class SimulationConfig:
    """시뮬레이션 설정. config.yaml의 simulation 섹션에 대응."""
    tick_interval: float = 3.0          # 가격 생성 주기 (초)
    mark_interval: float = 3.0          # 평가/자동청산 점검 주기 (초)
    analysis_interval: float = 15.0     # 감시 스윕 주기 (초)
    max_history: int = 50               # 종목별 가격 이력 최대 길이
    min_price: float = 0.01             # 가격 하한
    sentiment_divisor: float = 1500.0   # 심리 편향 정규화 상수 K
    initial_sentiment: float = 50.0     # 0~100, 50이 중립
    seed: int | None = None             # 난수 시드 (재현용)


@dataclass
class TradingConfig:
    """매매 설정. config.yaml의 trading 섹션에 대응."""
    initial_cash: float = 100_000.0
    confidence_threshold: float = 0.82  # 이 값을 "초과"해야 실행
    profit_target: float = 250.0        # 미실현 손익이 이 금액 이상이면 자동 청산
    min_lookback: int = 5               # 분석에 필요한 최소 가격 개수
    crypto_trade_size: float = 0.05     # 암호화폐 기본 주문 수량
    commodity_trade_size: float = 100.0  # 원자재 기본 주문 수량 (랏)
    live_trading: bool = False          # 브로커 연결 시 실주문 전달 여부
    max_sources: int = 10               # 감시 근거 출처 보관 개수
    intelligence_step: float = 0.02     # 스윕 1회당 지능 점수 증가분
    initial_intelligence: float = 95.2
    trade_log_limit: int | None = None  # None이면 거래 기록 무제한 보관


@dataclass
class ProviderConfig:
    """분석 제공자 설정. config.yaml의 provider 섹션에 대응.

    제공자별 파라미터는 params dict에 자유롭게 넣는다.
    각 제공자 클래스의 DEFAULT_PARAMS가 기본값 역할을 한다.
    """
    name: str = "technical"
    timeout: float = 10.0
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class BrokerConfig:
    """브로커 설정. config.yaml의 broker 섹션에 대응."""
    api_key: str = ""
    username: str = ""
    password: str = ""
    environment: str = "DEMO"   # "DEMO" or "LIVE"
    account_id: str | None = None
    latency: float = 0.0        # MockBroker 응답 지연 (초)


@dataclass
class DeskConfig:
    """전체 설정. from_yaml() 또는 from_json()으로 파일에서 로드."""
    instruments: list[InstrumentConfig] = field(default_factory=default_instruments)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    broker: BrokerConfig = field(default_factory=BrokerConfig)
    log_level: str = "INFO"
    log_dir: str | None = "logs"

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DeskConfig":
        """YAML 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls._from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "DeskConfig":
        """JSON 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "DeskConfig":
        """딕셔너리에서 DeskConfig 생성."""
        if not isinstance(data, dict):
            raise ConfigError("설정 최상위는 매핑이어야 합니다.")

        if "instruments" in data:
            raw_instruments = data["instruments"] or []
            if not isinstance(raw_instruments, list):
                raise ConfigError("instruments는 목록이어야 합니다.")
            instruments = []
            for item in raw_instruments:
                if not isinstance(item, dict) or "symbol" not in item:
                    raise ConfigError(f"잘못된 종목 설정: {item!r}")
                instruments.append(InstrumentConfig(**_known_fields(InstrumentConfig, item)))
        else:
            instruments = default_instruments()

        # provider 섹션 파싱: name, timeout은 직접 필드, 나머지는 params로
        provider_data = data.get("provider", {}) or {}
        if not isinstance(provider_data, dict):
            raise ConfigError("provider 섹션은 매핑이어야 합니다.")
        try:
            provider_timeout = float(provider_data.get("timeout", 10.0))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"provider.timeout 파싱 실패: {e}") from e
        if "params" in provider_data:
            provider_params = provider_data["params"] or {}
        else:
            provider_params = {
                k: v for k, v in provider_data.items()
                if k not in ("name", "timeout")
            }
        provider = ProviderConfig(
            name=provider_data.get("name", "technical"),
            timeout=provider_timeout,
            params=provider_params,
        )

        try:
            simulation = SimulationConfig(**_known_fields(SimulationConfig, data.get("simulation", {}) or {}))
            trading = TradingConfig(**_known_fields(TradingConfig, data.get("trading", {}) or {}))
            broker = BrokerConfig(**_known_fields(BrokerConfig, data.get("broker", {}) or {}))
        except TypeError as e:
            raise ConfigError(f"설정 파싱 실패: {e}") from e

        return cls(
            instruments=instruments,
            simulation=simulation,
            trading=trading,
            provider=provider,
            broker=broker,
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
        )

    def validate(self) -> None:
        """설정값 검증. 문제가 있으면 ConfigError.

        숫자 자리에 문자열 등 잘못된 타입이 들어와 비교가 실패해도 ConfigError로 올린다.
        """
        try:
            self._validate()
        except (TypeError, AttributeError) as e:
            raise ConfigError(f"설정값 타입 오류: {e}") from e

    def _validate(self) -> None:
        if not self.instruments:
            raise ConfigError("추적 종목이 비어 있습니다.")

        symbols = [i.symbol for i in self.instruments]
        duplicates = sorted({s for s in symbols if symbols.count(s) > 1})
        if duplicates:
            raise ConfigError(f"중복된 종목: {', '.join(duplicates)}")

        for inst in self.instruments:
            if inst.initial_price <= 0:
                raise ConfigError(f"{inst.symbol}: initial_price는 0보다 커야 합니다.")
            if inst.volatility < 0:
                raise ConfigError(f"{inst.symbol}: volatility는 음수일 수 없습니다.")
            if inst.asset_class.lower() not in ASSET_CLASSES:
                raise ConfigError(f"{inst.symbol}: 알 수 없는 자산군 '{inst.asset_class}'")

        sim = self.simulation
        for name in ("tick_interval", "mark_interval", "analysis_interval", "min_price", "sentiment_divisor"):
            if getattr(sim, name) <= 0:
                raise ConfigError(f"simulation.{name}는 0보다 커야 합니다.")
        if sim.max_history < 1:
            raise ConfigError("simulation.max_history는 1 이상이어야 합니다.")
        if not 0 <= sim.initial_sentiment <= 100:
            raise ConfigError("simulation.initial_sentiment는 0~100 범위여야 합니다.")

        trading = self.trading
        if not 0 <= trading.confidence_threshold <= 1:
            raise ConfigError("trading.confidence_threshold는 0~1 범위여야 합니다.")
        if trading.initial_cash < 0:
            raise ConfigError("trading.initial_cash는 음수일 수 없습니다.")
        if trading.profit_target <= 0:
            raise ConfigError("trading.profit_target은 0보다 커야 합니다.")
        if trading.crypto_trade_size <= 0 or trading.commodity_trade_size <= 0:
            raise ConfigError("기본 주문 수량은 0보다 커야 합니다.")
        if trading.min_lookback < 1:
            raise ConfigError("trading.min_lookback은 1 이상이어야 합니다.")
        if trading.min_lookback > sim.max_history:
            raise ConfigError(
                f"trading.min_lookback({trading.min_lookback})이 simulation.max_history({sim.max_history})보다 큽니다."
            )

        if self.broker.environment.upper() not in ("DEMO", "LIVE"):
            raise ConfigError(f"알 수 없는 브로커 환경: {self.broker.environment}")

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환."""
        from dataclasses import asdict
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, allow_unicode=True, default_flow_style=False)


def _known_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    """dataclass에 정의된 키만 남긴다 (알 수 없는 키는 무시)."""
    if not isinstance(data, dict):
        raise ConfigError(f"{cls.__name__} 섹션은 매핑이어야 합니다.")
    return {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
