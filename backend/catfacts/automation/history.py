# backend/catfacts/automation/history.py

"""
スケジューラの状態と直近のサイクル履歴を保持する。

書き込みはスケジューラ（イベントループ）から、読み出しは HTTP ハンドラ（スレッドプール）から
行われるので、内部はロックで保護する。永続化はしない。
"""

from __future__ import annotations

import threading
from collections import deque
from datetime import date, datetime
from typing import Deque, Optional

from .schemas import CycleRecord, SchedulerState, SchedulerStatus


class DispatchHistory:
    def __init__(self, *, max_records: int = 30) -> None:
        self._lock = threading.Lock()
        self._records: Deque[CycleRecord] = deque(maxlen=max_records)
        self._state = SchedulerState.WAITING
        self._next_trigger_at: Optional[datetime] = None
        self._last_dispatch_date: Optional[date] = None

    def set_state(self, state: SchedulerState) -> None:
        with self._lock:
            self._state = state

    def set_next_trigger(self, trigger_at: Optional[datetime]) -> None:
        with self._lock:
            self._next_trigger_at = trigger_at

    def record(self, record: CycleRecord) -> None:
        with self._lock:
            self._records.append(record)
            self._last_dispatch_date = record.trigger_at.date()

    @property
    def last_record(self) -> Optional[CycleRecord]:
        with self._lock:
            return self._records[-1] if self._records else None

    def snapshot(self) -> SchedulerStatus:
        """現在の状態を SchedulerStatus として返す（履歴は新しい順）。"""
        with self._lock:
            return SchedulerStatus(
                state=self._state,
                next_trigger_at=self._next_trigger_at,
                last_dispatch_date=self._last_dispatch_date,
                recent_cycles=list(reversed(self._records)),
            )
