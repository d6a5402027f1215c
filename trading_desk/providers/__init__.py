"""
분석 제공자 모듈.

[ 제공자 등록 방식 ]
    @register("제공자이름") 데코레이터를 붙이면 PROVIDER_REGISTRY에 자동 등록.
    run_desk.py / TradingDesk에서 이름만으로 제공자를 생성할 수 있다.

[ 새 제공자 추가 방법 ]
    1. 이 디렉토리에 새 .py 파일 생성
    2. AnalysisProvider를 상속받는 클래스 작성 (_analyze 구현)
    3. @register("이름") 데코레이터 추가
    4. config.yaml에서 provider.name을 해당 이름으로 설정
"""

from importlib import import_module
from pathlib import Path
from typing import Any

from trading_desk.core.analysis_provider import AnalysisProvider
from trading_desk.utils.config import ConfigError

# 제공자 이름 → 제공자 클래스 매핑
PROVIDER_REGISTRY: dict[str, type[AnalysisProvider]] = {}


def register(name: str):
    """제공자 클래스를 PROVIDER_REGISTRY에 등록하는 데코레이터.

    AnalysisProvider 하위 클래스만 받으며, 같은 이름에 다른 클래스를 두 번 등록하면 거부한다.
    """
    def decorator(cls: type[AnalysisProvider]):
        if not (isinstance(cls, type) and issubclass(cls, AnalysisProvider)):
            raise TypeError(f"'{name}': AnalysisProvider 하위 클래스만 등록할 수 있습니다 ({cls!r}).")
        existing = PROVIDER_REGISTRY.get(name)
        if existing is not None and existing.__qualname__ != cls.__qualname__:
            raise ValueError(f"분석 제공자 이름 중복: '{name}' ({existing.__name__}, {cls.__name__})")
        PROVIDER_REGISTRY[name] = cls
        return cls
    return decorator


def create_provider(
    name: str,
    params: dict[str, Any] | None = None,
    timeout: float = 10.0,
) -> AnalysisProvider:
    """이름으로 제공자 인스턴스를 생성.

    Args:
        name: 등록된 제공자 이름 (예: "technical", "ma_cross")
        params: 제공자 파라미터 (각 제공자의 DEFAULT_PARAMS를 오버라이드)
        timeout: analyze() 1회 호출 제한 시간 (초)

    Raises:
        ConfigError: 등록되지 않은 제공자 이름, DEFAULT_PARAMS에 없는 파라미터
    """
    if name not in PROVIDER_REGISTRY:
        available = ", ".join(sorted(PROVIDER_REGISTRY.keys()))
        raise ConfigError(f"알 수 없는 분석 제공자: '{name}'. 사용 가능: {available}")

    cls = PROVIDER_REGISTRY[name]
    defaults = getattr(cls, "DEFAULT_PARAMS", None)
    if defaults is not None:
        unknown = sorted(set(params or {}) - set(defaults))
        if unknown:
            raise ConfigError(f"'{name}' 제공자가 모르는 파라미터: {', '.join(unknown)}")
    return cls(params=params, timeout=timeout)


def list_providers() -> list[str]:
    """등록된 제공자 이름 목록 반환."""
    return sorted(PROVIDER_REGISTRY.keys())


def _auto_discover():
    """이 디렉토리의 모든 제공자 모듈을 자동 임포트하여 @register가 실행되게 한다."""
    providers_dir = Path(__file__).parent
    for py_file in providers_dir.glob("*.py"):
        if py_file.name.startswith("_"):
            continue
        module_name = f"trading_desk.providers.{py_file.stem}"
        import_module(module_name)


# 모듈 로드 시 자동 탐색
_auto_discover()
