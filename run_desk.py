"""
트레이딩 데스크 실행 스크립트 (시스템 진입점).

[ 사용법 ]
    # 기본 실행 (config.yaml 사용, 60초 동안 감시)
    python run_desk.py

    # 분석 제공자 지정 + 파라미터 오버라이드
    python run_desk.py --provider ma_cross -p short_period=5 -p long_period=12

    # 재현 가능한 실행 (시드 고정) + 낙관적 시장 심리
    python run_desk.py --seed 42 --sentiment 70 --duration 120

    # 브로커 연결 후 실주문 전달 (MockBroker)
    python run_desk.py --live

    # 종료 후 스냅샷을 CSV로 저장
    python run_desk.py --export reports/

    # 등록된 분석 제공자 목록 확인
    python run_desk.py --list
"""

import argparse
import asyncio
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from trading_desk.providers import create_provider, list_providers
from trading_desk.reporting.snapshot import DeskSnapshot
from trading_desk.trading.desk import TradingDesk
from trading_desk.utils.config import ConfigError, DeskConfig
from trading_desk.utils.logger import setup_logger


def parse_param(param_str: str) -> tuple[str, object]:
    """'key=value' 문자열을 파싱하여 (key, value) 반환. 숫자면 자동 변환."""
    key, _, value = param_str.partition("=")
    key = key.strip()
    value = value.strip()

    # 숫자 자동 변환
    try:
        if "." in value:
            return key, float(value)
        return key, int(value)
    except ValueError:
        # bool 변환
        if value.lower() in ("true", "yes"):
            return key, True
        if value.lower() in ("false", "no"):
            return key, False
        return key, value


def print_summary(snapshot: DeskSnapshot) -> None:
    """세션 결과 출력."""
    s = snapshot.summary
    print("=" * 50)
    print("트레이딩 데스크 세션 리포트")
    print("=" * 50)
    print(f"총 자산:          {s['total_equity']:>14,.2f}")
    print(f"세션 손익:        {s['total_pnl']:>14,.2f} ({s['total_pnl_rate']:.2f}%)")
    print(f"실현 손익:        {s['realized_pnl']:>14,.2f}")
    print(f"미실현 손익:      {s['unrealized_pnl']:>14,.2f}")
    print(f"최대 낙폭(MDD):   {s['max_drawdown']:>13.2f}%")
    print("-" * 50)
    print(f"총 거래 횟수:     {s['total_trades']:>14d}")
    print(f"  매도:           {s['sell_trades']:>14d}")
    print(f"  승률:           {s['win_rate']:>13.1f}%")
    print(f"  실주문 전달:    {s['live_trades']:>14d}")
    print("=" * 50)

    holdings = [p for p in snapshot.positions if p["quantity"] > 0]
    if holdings:
        print("\n보유 종목:")
        for p in holdings:
            print(f"  {p['symbol']:<8} {p['quantity']:>10g} @ {p['avg_cost']:,.4g} "
                  f"(현재 {p['current_price']:,.4g}, 미실현 {p['unrealized_pnl']:+,.2f})")

    if snapshot.trades:
        print("\n최근 거래 (최대 5건):")
        for t in snapshot.trades[:5]:
            print(f"  [{t['timestamp']}] [{t['channel']}] {t['side']} {t['symbol']} "
                  f"{t['size']:g} @ {t['price']:,.4g}")


def export_snapshot(snapshot: DeskSnapshot, out_dir: Path) -> list[Path]:
    """스냅샷을 CSV 세 개로 저장."""
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = snapshot.taken_at.strftime("%Y%m%d_%H%M%S")
    written = []
    for name, frame in snapshot.to_frames().items():
        path = out_dir / f"desk_{name}_{stamp}.csv"
        frame.to_csv(path, index=False)
        written.append(path)
    return written


async def run_session(desk: TradingDesk, duration: float, live: bool) -> None:
    if live:
        if await desk.connect_broker():
            desk.set_live_trading(True)
        else:
            print("브로커 연결 실패, 시뮬레이션으로 계속 진행")
    await desk.run(duration)

    report = await desk.generate_briefing()
    if report is not None:
        print(f"\n[일일 브리핑 {report.date}] {report.summary}")
        for lesson in report.lessons_learned:
            print(f"  - {lesson}")


def main():
    parser = argparse.ArgumentParser(description="시뮬레이션 트레이딩 데스크 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--provider", type=str, default=None, help="분석 제공자 이름 (config.yaml 대신 지정)")
    parser.add_argument("-p", "--param", action="append", default=[], help="제공자 파라미터 오버라이드 (예: -p rsi_period=10)")
    parser.add_argument("--duration", type=float, default=60.0, help="실행 시간 (초)")
    parser.add_argument("--seed", type=int, default=None, help="가격 생성 난수 시드")
    parser.add_argument("--sentiment", type=float, default=None, help="시장 심리 지수 (0~100)")
    parser.add_argument("--live", action="store_true", help="브로커 연결 후 실주문 전달")
    parser.add_argument("--export", type=str, default=None, metavar="DIR", help="종료 후 스냅샷 CSV 저장 경로")
    parser.add_argument("--list", action="store_true", help="등록된 분석 제공자 목록 출력")
    args = parser.parse_args()

    # 제공자 목록 출력
    if args.list:
        print("등록된 분석 제공자:")
        for name in list_providers():
            print(f"  - {name}")
        return

    # 설정 로드
    config_path = Path(args.config)
    try:
        if config_path.exists():
            config = DeskConfig.from_yaml(config_path)
        else:
            print(f"설정 파일 없음: {config_path}, 기본값 사용")
            config = DeskConfig()
    except ConfigError as e:
        print(f"설정 오류: {e}")
        return

    if args.seed is not None:
        config.simulation = replace(config.simulation, seed=args.seed)

    # 로거
    setup_logger(level=config.log_level, log_dir=config.log_dir)

    # 제공자 생성 (CLI 파라미터 오버라이드)
    provider_name = args.provider or config.provider.name
    provider_params = dict(config.provider.params)
    for p in args.param:
        key, value = parse_param(p)
        provider_params[key] = value
    try:
        provider = create_provider(provider_name, params=provider_params, timeout=config.provider.timeout)
    except ConfigError as e:
        print(f"설정 오류: {e}")
        return

    print(f"\n분석 제공자: {provider_name}")
    if args.param:
        print(f"파라미터 오버라이드: {dict(parse_param(p) for p in args.param)}")
    print(f"실행 시간: {args.duration:.0f}초 ({datetime.now():%H:%M:%S} 시작)")

    desk = TradingDesk(config, provider=provider)
    if args.sentiment is not None:
        desk.set_sentiment(args.sentiment)

    asyncio.run(run_session(desk, args.duration, args.live))

    snapshot = desk.snapshot()
    print()
    print_summary(snapshot)

    if args.export:
        for path in export_snapshot(snapshot, Path(args.export)):
            print(f"저장: {path}")


if __name__ == "__main__":
    main()
