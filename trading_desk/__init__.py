"""
=============================================================================
시뮬레이션 멀티 에셋 트레이딩 데스크 (Trading Desk)
=============================================================================

[ 시스템 전체 구조 ]

    run_desk.py (진입점)
         │
         ├── utils/config.py        ← config.yaml 설정 로드
         ├── utils/logger.py        ← 로깅
         │
         ├── providers/             ← 분석 제공자 (BUY/SELL/HOLD 결정)
         │     ├── technical_provider.py
         │     └── ma_cross_provider.py
         │
         └── trading/desk.py        ← 세션 오케스트레이터 (주기 작업 3개)
               │
               ├── market/price_synthesizer.py  ← 합성 가격 틱
               ├── data/portfolio.py            ← 현금/포지션 원장
               ├── trading/decision_gate.py     ← 신뢰도/현금/보유 조건 필터
               ├── trading/execution_engine.py  ← 체결 반영 + 거래 기록 (+ 브로커 전달)
               ├── trading/auto_exit.py         ← 목표수익 자동 청산
               ├── trading/surveillance.py      ← 주기적 전 종목 분석 스윕
               └── reporting/                   ← 지표, 스냅샷, 일일 브리핑


[ 핵심 추상 클래스 (core/) - 외부 협력자 계약 ]

    core/analysis_provider.py → providers/*.py (fail-closed analyze())
    core/briefing_provider.py → reporting/briefing.py::SessionBriefingProvider
    core/broker_api.py        → brokers/mock_broker.py::MockBroker


[ 데이터 흐름 ]

    1. PriceSynthesizer가 tick_interval마다 종목별 새 가격 생성 → PriceBook
    2. mark_interval마다 Portfolio 평가 → AutoExitMonitor가 목표수익 도달 포지션 청산
    3. analysis_interval마다 SurveillanceScheduler가 종목별 분석 제공자 호출
    4. DecisionGate 통과 시 ExecutionEngine이 Portfolio에 체결 반영 + TradeRecord 기록
    5. snapshot()으로 요약/포지션/거래 기록을 외부 리포트 컴포넌트에 제공
"""
