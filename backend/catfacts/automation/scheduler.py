# backend/catfacts/automation/scheduler.py

"""
ローカル時刻の深夜0時に 1 日 1 回ディスパッチサイクルを起動するスケジューラ。

状態は WAITING（次のトリガー時刻まで sleep）と DISPATCHING（サイクル実行中）の 2 つ。
サイクル終了後の次回トリガーは「現在の壁時計時刻から見た翌日の深夜0時」で計算し直す。
前回トリガーに 24 時間を足すことはしないので、サイクルの処理時間が日をまたいで蓄積しない。

サイクル内の失敗はここでログに残して握りつぶし、ループは止めない。
スケジューラが終了すると HTTP サーバも一緒に終了するため（runner 参照）。
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Awaitable, Callable, Optional

from .dispatcher import DataFetchError, NotificationDispatcher
from .history import DispatchHistory
from .schemas import CycleRecord, CycleReport, SchedulerState

logger = logging.getLogger(__name__)

# DST の切り替え日でも 1 日は最大 25 時間。それを超える待ち時間は時計の異常とみなす。
MAX_WAIT = timedelta(hours=26)

Clock = Callable[[], datetime]
Sleeper = Callable[[float], Awaitable[None]]


class SchedulingComputeError(RuntimeError):
    """次の深夜0時までの待ち時間を計算できなかった場合の例外（時計の異常など）。"""


def next_local_midnight(now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """
    now から見た「翌暦日のローカル深夜0時」を返す。

    - tz を指定した場合はそのタイムゾーンの規則（DST を含む）で計算する
    - tz が None の場合はホストのローカル時刻で計算する
    - naive な now はホストのローカル時刻として扱う
    """
    if tz is not None:
        local_now = now.astimezone(tz)
        return datetime.combine(local_now.date() + timedelta(days=1), time.min, tzinfo=tz)

    local_now = now.astimezone()
    naive_target = datetime.combine(local_now.date() + timedelta(days=1), time.min)
    return naive_target.astimezone()


def time_until(target: datetime, now: datetime) -> timedelta:
    # 同じ ZoneInfo 同士の引き算は壁時計上の差になるので、UTC に揃えてから引く
    return target.astimezone(timezone.utc) - now.astimezone(timezone.utc)


def time_until_next_midnight(now: datetime, tz: Optional[tzinfo] = None) -> timedelta:
    """
    now から次のローカル深夜0時までの待ち時間を返す。now + 待ち時間 == 次の深夜0時。

    :raises SchedulingComputeError: 計算に失敗した、または結果が (0, 26時間] に収まらない場合
    """
    try:
        delay = time_until(next_local_midnight(now, tz), now)
    except (OverflowError, ValueError, OSError) as exc:
        raise SchedulingComputeError(f"Could not compute next midnight from {now!r}: {exc}") from exc

    if delay <= timedelta(0) or delay > MAX_WAIT:
        raise SchedulingComputeError(
            f"Computed wait {delay} from {now.isoformat()} is out of range."
        )
    return delay


def _default_clock(tz: Optional[tzinfo]) -> Clock:
    if tz is None:
        return lambda: datetime.now().astimezone()
    return lambda: datetime.now(tz)


class DailyScheduler:
    """
    1 日 1 回、ローカル深夜0時に NotificationDispatcher.run_cycle() を呼ぶ。

    - run_forever(): 終了しない常駐ループ
    - run_until_next_dispatch(): WAITING → DISPATCHING → WAITING の遷移を 1 回だけ行う
    - clock / sleep を注入できる（テストでは疑似時計を使う）
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        *,
        tz: Optional[tzinfo] = None,
        retry_backoff_seconds: float = 60.0,
        history: Optional[DispatchHistory] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._tz = tz
        self._retry_backoff_seconds = float(retry_backoff_seconds)
        self._history = history or DispatchHistory()
        self._clock = clock or _default_clock(tz)
        self._sleep = sleep or asyncio.sleep

        self._state = SchedulerState.WAITING
        self._next_trigger: Optional[datetime] = None
        self._last_dispatch_date: Optional[date] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def next_trigger(self) -> Optional[datetime]:
        return self._next_trigger

    @property
    def last_dispatch_date(self) -> Optional[date]:
        return self._last_dispatch_date

    @property
    def history(self) -> DispatchHistory:
        return self._history

    # ------------------------------------------------------------------
    # 公開 API
    # ------------------------------------------------------------------
    async def run_forever(self) -> None:
        """プロセスが生きている限り回り続ける。正常終了の経路はない。"""
        logger.info("Daily scheduler started.")
        while True:
            await self.run_until_next_dispatch()

    async def run_until_next_dispatch(self) -> Optional[CycleReport]:
        """
        次のトリガー時刻まで待ち、サイクルを 1 回実行し、次のトリガー時刻を計算し直す。

        サイクルが失敗した場合や、同じ暦日を既に配信済みの場合は None を返す。
        """
        if self._next_trigger is None:
            self._next_trigger = await self._compute_next_trigger()
        trigger = self._next_trigger

        await self._wait_until(trigger)

        report: Optional[CycleReport] = None
        if trigger.date() == self._last_dispatch_date:
            logger.info("Already dispatched for %s; skipping.", trigger.date())
        else:
            report = await self._dispatch(trigger)

        self._next_trigger = await self._compute_next_trigger()
        return report

    # ------------------------------------------------------------------
    # 内部ヘルパー
    # ------------------------------------------------------------------
    async def _compute_next_trigger(self) -> datetime:
        """
        現在の壁時計時刻から次のトリガー時刻を計算する。

        SchedulingComputeError の場合は一時的な異常として扱い、
        バックオフしてから計算し直す（スケジューラは止めない）。
        """
        while True:
            try:
                now = self._clock()
                delay = time_until_next_midnight(now, self._tz)
                trigger = next_local_midnight(now, self._tz)
            except SchedulingComputeError as exc:
                logger.error(
                    "Failed to compute next trigger: %s; retrying in %.0fs",
                    exc,
                    self._retry_backoff_seconds,
                )
                await self._sleep(self._retry_backoff_seconds)
                continue

            logger.info("Next dispatch cycle at %s (in %s).", trigger.isoformat(), delay)
            self._history.set_next_trigger(trigger)
            return trigger

    async def _wait_until(self, trigger: datetime) -> None:
        # sleep が早めに戻ってきた場合だけ残りを待ち直す
        while True:
            remaining = time_until(trigger, self._clock()).total_seconds()
            if remaining <= 0:
                return
            await self._sleep(remaining)

    async def _dispatch(self, trigger: datetime) -> Optional[CycleReport]:
        self._state = SchedulerState.DISPATCHING
        self._history.set_state(SchedulerState.DISPATCHING)
        started_at = self._clock()

        report: Optional[CycleReport] = None
        error: Optional[str] = None
        try:
            # ディスパッチャはブロッキング I/O（ストア / SMTP）なのでワーカースレッドで実行する
            report = await asyncio.to_thread(self._dispatcher.run_cycle, started_at)
        except DataFetchError as exc:
            error = str(exc)
            logger.error("Dispatch cycle aborted: %s", exc)
        except Exception as exc:  # noqa: BLE001 - サイクルの失敗でスケジューラを止めない
            error = f"{type(exc).__name__}: {exc}"
            logger.exception("Unexpected error during dispatch cycle.")
        finally:
            self._state = SchedulerState.WAITING
            self._history.set_state(SchedulerState.WAITING)
            self._last_dispatch_date = trigger.date()

        self._history.record(
            CycleRecord(
                trigger_at=trigger,
                started_at=started_at,
                finished_at=self._clock(),
                report=report,
                error=error,
            )
        )
        return report

