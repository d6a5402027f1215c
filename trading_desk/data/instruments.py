"""
추적 종목(Instrument) 정의.

[ 역할 ]
    세션 설정에서 로드되는 정적 종목 정보. 로드 후 변경되지 않음.
    자산군(암호화폐/원자재)에 따라 기본 주문 수량이 달라진다.

[ 호출하는 곳 ]
    - market/price_synthesizer.py에서 변동성/초기가격 사용
    - trading/decision_gate.py, trading/execution_engine.py에서 기본 수량 결정
"""

from dataclasses import dataclass
from enum import Enum

from trading_desk.utils.config import InstrumentConfig


class AssetClass(Enum):
    """자산군. 기본 주문 수량을 결정한다."""
    CRYPTO = "crypto"
    COMMODITY = "commodity"


@dataclass(frozen=True)
class Instrument:
    """추적 종목 정적 정보."""
    symbol: str
    name: str
    volatility: float       # 틱당 변동성 계수
    initial_price: float
    asset_class: AssetClass = AssetClass.CRYPTO

    @classmethod
    def from_config(cls, cfg: InstrumentConfig) -> "Instrument":
        return cls(
            symbol=cfg.symbol,
            name=cfg.name or cfg.symbol,
            volatility=float(cfg.volatility),
            initial_price=float(cfg.initial_price),
            asset_class=AssetClass(cfg.asset_class.lower()),
        )


@dataclass(frozen=True)
class TradeSizes:
    """자산군별 기본 주문 수량."""
    crypto: float = 0.05
    commodity: float = 100.0

    def default_size(self, instrument: Instrument) -> float:
        if instrument.asset_class == AssetClass.COMMODITY:
            return self.commodity
        return self.crypto
