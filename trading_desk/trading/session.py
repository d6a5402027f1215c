"""
세션 상태 모듈.

[ 역할 ]
    감시 on/off, 마지막 동작, 현재 판단 내용, 지능 점수, 최근 근거 출처 목록을
    명시적인 객체로 보관. 전역 변수 대신 TradingDesk가 소유하고
    감시 스케줄러와 실행 엔진에 전달한다.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from trading_desk.core.analysis_provider import SourceCitation


DEFAULT_SKILLS = [
    "Web-Grounded Intelligence",
    "Parallel Node Analysis",
    "Real-time Fund Guard",
]


@dataclass
class SessionStatus:
    """세션 상태. 감시 스케줄러와 실행 엔진만 변경한다."""
    monitoring: bool = False
    last_action: str = "Idle"
    current_thought: str = "분석 엔진 초기화 완료. 다중 자산 감시 대기 중."
    intelligence_level: float = 95.2
    intelligence_cap: float = 100.0
    skills: list[str] = field(default_factory=lambda: list(DEFAULT_SKILLS))
    sources: list[SourceCitation] = field(default_factory=list)
    max_sources: int = 10
    last_error: Optional[str] = None

    def merge_sources(self, found: Iterable[SourceCitation]) -> list[SourceCitation]:
        """새 출처를 앞에 붙이고 uri 기준 중복 제거 후 max_sources개로 자른다."""
        merged: dict[str, SourceCitation] = {}
        for source in [*found, *self.sources]:
            if source.uri not in merged:
                merged[source.uri] = source
        self.sources = list(merged.values())[: self.max_sources]
        return self.sources

    def nudge_intelligence(self, step: float) -> float:
        self.intelligence_level = min(self.intelligence_cap, self.intelligence_level + step)
        return self.intelligence_level
