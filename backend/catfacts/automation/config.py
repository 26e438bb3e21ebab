# backend/catfacts/automation/config.py

"""
日次スケジューラの設定値。
"""

from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from catfacts.utils.config import get_env, get_env_float


@dataclass(frozen=True)
class SchedulerSettings:
    """
    DailyScheduler 用の設定値コンテナ。

    tz が None の場合はホストのローカル時刻の深夜0時に配信する。
    """

    tz: Optional[tzinfo] = None
    retry_backoff_seconds: float = 60.0


def load_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    IANA タイムゾーン名から tzinfo を返す。None / 空文字なら None（ホストのローカル時刻）。

    :raises ValueError: 不明なタイムゾーン名の場合
    """
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone '{name}'") from exc


def get_scheduler_settings() -> SchedulerSettings:
    """
    環境変数からスケジューラ設定を読み込む。

    任意:
      - CATFACTS_TIMEZONE                (IANA 名。未設定ならホストのローカル時刻)
      - SCHEDULER_RETRY_BACKOFF_SECONDS  (デフォルト: 60秒)
    """
    tz = load_timezone(get_env("CATFACTS_TIMEZONE", required=False))
    backoff = get_env_float("SCHEDULER_RETRY_BACKOFF_SECONDS", default=60.0)

    return SchedulerSettings(
        tz=tz,
        retry_backoff_seconds=backoff if backoff > 0 else 60.0,
    )
