# backend/tests/test_automation_scheduler.py
from __future__ import annotations

import asyncio
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

import pytest

from catfacts.automation import scheduler as scheduler_module
from catfacts.automation.config import load_timezone
from catfacts.automation.dispatcher import DataFetchError
from catfacts.automation.history import DispatchHistory
from catfacts.automation.schemas import CycleReport, DispatchStatus, SchedulerState
from catfacts.automation.scheduler import (
    DailyScheduler,
    SchedulingComputeError,
    next_local_midnight,
    time_until_next_midnight,
)

UTC = timezone.utc
NEW_YORK = ZoneInfo("America/New_York")


class FakeClock:
    """sleep すると時計が進む疑似時計。"""

    def __init__(self, start: datetime) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


class FakeDispatcher:
    """
    run_cycle の呼び出し時刻を記録し、latency 分だけ時計を進めるダミー。
    """

    def __init__(
        self,
        clock: FakeClock,
        *,
        latency: timedelta = timedelta(0),
        error: Optional[Exception] = None,
    ) -> None:
        self.clock = clock
        self.latency = latency
        self.error = error
        self.calls: List[datetime] = []

    def run_cycle(self, now: Optional[datetime] = None) -> CycleReport:
        self.calls.append(self.clock())
        self.clock.now += self.latency
        if self.error is not None:
            raise self.error
        return CycleReport(
            triggered_at=now or self.clock(),
            finished_at=self.clock(),
            fact_id=1,
            attempted=0,
            succeeded=0,
            failed=0,
            status=DispatchStatus.EMPTY,
        )


def _scheduler(clock: FakeClock, dispatcher: FakeDispatcher, **kwargs) -> DailyScheduler:
    kwargs.setdefault("tz", UTC)
    return DailyScheduler(dispatcher, clock=clock, sleep=clock.sleep, **kwargs)


# ----------------------------------------------------------------------
# 深夜0時までの待ち時間計算
# ----------------------------------------------------------------------


def test_time_until_next_midnight_basic() -> None:
    now = datetime(2025, 1, 2, 13, 45, 30, tzinfo=UTC)

    assert next_local_midnight(now, UTC) == datetime(2025, 1, 3, tzinfo=UTC)
    assert time_until_next_midnight(now, UTC) == timedelta(hours=10, minutes=14, seconds=30)


def test_exactly_midnight_targets_the_following_day() -> None:
    now = datetime(2025, 1, 3, 0, 0, 0, tzinfo=UTC)

    assert next_local_midnight(now, UTC) == datetime(2025, 1, 4, tzinfo=UTC)
    assert time_until_next_midnight(now, UTC) == timedelta(hours=24)


@pytest.mark.parametrize("tz", [UTC, NEW_YORK, ZoneInfo("Asia/Tokyo"), ZoneInfo("Australia/Lord_Howe")])
def test_now_plus_wait_is_next_local_midnight(tz) -> None:
    start = datetime(2025, 1, 1, 0, 0, 7, tzinfo=UTC)
    for step in range(0, 366 * 24, 7):
        now = start + timedelta(hours=step, minutes=step % 60)
        wait = time_until_next_midnight(now, tz)
        target = (now + wait).astimezone(tz)

        assert target.time() == time(0, 0)
        assert target.date() == now.astimezone(tz).date() + timedelta(days=1)


def test_spring_forward_day_is_23_hours() -> None:
    # 2025-03-09 は米国東部で夏時間開始（02:00 → 03:00）
    now = datetime(2025, 3, 9, 0, 30, tzinfo=NEW_YORK)

    assert time_until_next_midnight(now, NEW_YORK) == timedelta(hours=22, minutes=30)
    assert next_local_midnight(now, NEW_YORK).utcoffset() == timedelta(hours=-4)


def test_fall_back_day_is_25_hours() -> None:
    # 2025-11-02 は米国東部で夏時間終了（02:00 → 01:00）
    now = datetime(2025, 11, 2, 0, 30, tzinfo=NEW_YORK)

    assert time_until_next_midnight(now, NEW_YORK) == timedelta(hours=24, minutes=30)


def test_host_local_zone_is_used_when_tz_is_none() -> None:
    now = datetime.now().astimezone()

    target = next_local_midnight(now)

    assert target.astimezone().time() == time(0, 0)
    assert now + time_until_next_midnight(now) == target


def test_out_of_range_wait_is_a_compute_error(monkeypatch) -> None:
    monkeypatch.setattr(
        scheduler_module,
        "next_local_midnight",
        lambda now, tz=None: now - timedelta(seconds=1),
    )

    with pytest.raises(SchedulingComputeError):
        time_until_next_midnight(datetime(2025, 1, 1, tzinfo=UTC), UTC)


def test_load_timezone() -> None:
    assert load_timezone(None) is None
    assert load_timezone("") is None
    assert load_timezone("Asia/Tokyo") == ZoneInfo("Asia/Tokyo")
    with pytest.raises(ValueError):
        load_timezone("Mars/Olympus_Mons")


# ----------------------------------------------------------------------
# スケジューラのループ
# ----------------------------------------------------------------------


def test_dispatch_latency_does_not_cause_drift() -> None:
    clock = FakeClock(datetime(2025, 1, 1, 15, 0, tzinfo=UTC))
    dispatcher = FakeDispatcher(clock, latency=timedelta(minutes=90))
    scheduler = _scheduler(clock, dispatcher)

    async def _run_three_days() -> None:
        for _ in range(3):
            await scheduler.run_until_next_dispatch()

    asyncio.run(_run_three_days())

    assert dispatcher.calls == [
        datetime(2025, 1, 2, tzinfo=UTC),
        datetime(2025, 1, 3, tzinfo=UTC),
        datetime(2025, 1, 4, tzinfo=UTC),
    ]
    # 初回 9 時間待ち、以降は処理時間 90 分を差し引いた 22.5 時間待ち
    assert clock.sleeps == [9 * 3600, 22.5 * 3600, 22.5 * 3600]
    assert scheduler.next_trigger == datetime(2025, 1, 5, tzinfo=UTC)
    assert scheduler.state == SchedulerState.WAITING


def test_early_wakeup_sleeps_again_before_dispatching() -> None:
    clock = FakeClock(datetime(2025, 1, 1, 23, 0, tzinfo=UTC))
    dispatcher = FakeDispatcher(clock)
    woke_early = []

    async def _short_first_sleep(seconds: float) -> None:
        if not woke_early:
            woke_early.append(True)
            seconds = seconds / 2
        await clock.sleep(seconds)

    scheduler = DailyScheduler(dispatcher, tz=UTC, clock=clock, sleep=_short_first_sleep)

    asyncio.run(scheduler.run_until_next_dispatch())

    assert clock.sleeps == [1800, 1800]
    assert dispatcher.calls == [datetime(2025, 1, 2, tzinfo=UTC)]


@pytest.mark.parametrize(
    "error",
    [DataFetchError("No cat facts stored; nothing to send."), RuntimeError("unexpected")],
)
def test_cycle_failure_is_logged_and_loop_continues(error: Exception) -> None:
    clock = FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))
    dispatcher = FakeDispatcher(clock, error=error)
    history = DispatchHistory()
    scheduler = _scheduler(clock, dispatcher, history=history)

    async def _run_two_days() -> List[Optional[CycleReport]]:
        return [await scheduler.run_until_next_dispatch() for _ in range(2)]

    reports = asyncio.run(_run_two_days())

    assert reports == [None, None]
    assert len(dispatcher.calls) == 2
    assert scheduler.next_trigger == datetime(2025, 1, 4, tzinfo=UTC)
    assert scheduler.state == SchedulerState.WAITING

    record = history.last_record
    assert record is not None
    assert record.report is None
    assert str(error) in (record.error or "")


def test_clock_moving_backwards_does_not_dispatch_twice() -> None:
    clock = FakeClock(datetime(2025, 1, 1, 22, 0, tzinfo=UTC))
    dispatcher = FakeDispatcher(clock, latency=timedelta(seconds=-5))
    scheduler = _scheduler(clock, dispatcher)

    async def _run() -> List[Optional[CycleReport]]:
        return [await scheduler.run_until_next_dispatch() for _ in range(2)]

    reports = asyncio.run(_run())

    # 2 回目は同じ深夜0時を再度待つことになるが、配信済みなのでスキップされる
    assert reports[0] is not None
    assert reports[1] is None
    assert dispatcher.calls == [datetime(2025, 1, 2, tzinfo=UTC)]
    assert scheduler.last_dispatch_date == datetime(2025, 1, 2).date()
    assert scheduler.next_trigger == datetime(2025, 1, 3, tzinfo=UTC)


def test_compute_error_backs_off_and_retries(monkeypatch) -> None:
    clock = FakeClock(datetime(2025, 1, 1, 18, 0, tzinfo=UTC))
    dispatcher = FakeDispatcher(clock)
    real = scheduler_module.time_until_next_midnight
    failures = [SchedulingComputeError("clock anomaly")]

    def _flaky(now, tz=None):
        if failures:
            raise failures.pop()
        return real(now, tz)

    monkeypatch.setattr(scheduler_module, "time_until_next_midnight", _flaky)
    scheduler = _scheduler(clock, dispatcher, retry_backoff_seconds=30)

    asyncio.run(scheduler.run_until_next_dispatch())

    assert clock.sleeps[0] == 30
    assert clock.sleeps[1] == 6 * 3600 - 30
    assert dispatcher.calls == [datetime(2025, 1, 2, tzinfo=UTC)]


class _StopLoop(Exception):
    pass


def test_run_forever_survives_repeated_failures() -> None:
    clock = FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))
    dispatcher = FakeDispatcher(clock, error=DataFetchError("empty"))

    async def _sleep(seconds: float) -> None:
        if len(dispatcher.calls) >= 3:
            raise _StopLoop()
        await clock.sleep(seconds)

    scheduler = DailyScheduler(dispatcher, tz=UTC, clock=clock, sleep=_sleep)

    with pytest.raises(_StopLoop):
        asyncio.run(scheduler.run_forever())

    assert len(dispatcher.calls) == 3


def test_history_snapshot_reflects_scheduler() -> None:
    clock = FakeClock(datetime(2025, 1, 1, 20, 0, tzinfo=UTC))
    history = DispatchHistory()
    scheduler = _scheduler(clock, FakeDispatcher(clock), history=history)

    asyncio.run(scheduler.run_until_next_dispatch())
    snapshot = history.snapshot()

    assert snapshot.state == SchedulerState.WAITING
    assert snapshot.next_trigger_at == datetime(2025, 1, 3, tzinfo=UTC)
    assert snapshot.last_dispatch_date == datetime(2025, 1, 2).date()
    assert len(snapshot.recent_cycles) == 1
    assert snapshot.recent_cycles[0].report is not None
