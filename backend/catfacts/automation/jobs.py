# backend/catfacts/automation/jobs.py
from __future__ import annotations

import argparse
import logging
from datetime import datetime, tzinfo
from typing import List, Optional

from catfacts.notifications.factory import get_mail_transport
from catfacts.store.state import get_store_accessor

from .config import get_scheduler_settings
from .dispatcher import DataFetchError, NotificationDispatcher
from .schemas import CycleReport
from .scheduler import next_local_midnight, time_until_next_midnight


def build_dispatcher() -> NotificationDispatcher:
    """
    共有の StoreAccessor と MailTransport から NotificationDispatcher を組み立てる。
    """
    return NotificationDispatcher(get_store_accessor(), get_mail_transport())


def run_dispatch_now(*, dispatcher: Optional[NotificationDispatcher] = None) -> CycleReport:
    """
    スケジュールを待たずにディスパッチサイクルを 1 回だけ実行する。

    運用者が手動で再送したい場合や、配信設定の動作確認に使う。
    DataFetchError はそのまま呼び出し側に返す。
    """
    dispatcher = dispatcher or build_dispatcher()
    return dispatcher.run_cycle()


def describe_next_trigger(
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    """次のトリガー時刻と待ち時間を人間向けの 1 行で返す。"""
    if now is None:
        now = datetime.now(tz) if tz is not None else datetime.now().astimezone()
    trigger = next_local_midnight(now, tz)
    delay = time_until_next_midnight(now, tz)
    return f"Next dispatch cycle at {trigger.isoformat()} (in {delay})"


def main(argv: Optional[List[str]] = None) -> int:
    """
    簡易 CLI エントリーポイント。

    例:
        python -m catfacts.automation.jobs dispatch-now
        python -m catfacts.automation.jobs next-trigger
    """
    parser = argparse.ArgumentParser(description="Cat Facts automation jobs runner")
    parser.add_argument(
        "job",
        choices=["dispatch-now", "next-trigger"],
        help="実行するジョブ種別",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    if args.job == "next-trigger":
        settings = get_scheduler_settings()
        print(describe_next_trigger(tz=settings.tz))
        return 0

    try:
        report = run_dispatch_now()
    except DataFetchError as exc:
        print(f"Dispatch cycle aborted: {exc}")
        return 1

    print(report.summary())
    return 0 if report.failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
