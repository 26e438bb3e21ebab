# backend/catfacts/store/config.py

"""
ストア（単一 sqlite コネクション）に関する設定値。
"""

from dataclasses import dataclass
from typing import Optional

from catfacts.utils.config import get_env, get_env_float


@dataclass(frozen=True)
class StoreSettings:
    """ストア接続用の設定値コンテナ。"""

    db_path: str
    # None の場合はゲート待ちに上限を設けない
    gate_timeout_seconds: Optional[float] = 30.0


def get_store_settings() -> StoreSettings:
    """
    環境変数からストア設定を読み込む。

    任意:
      - CATFACTS_DB_PATH            (デフォルト: catfacts.db)
      - STORE_GATE_TIMEOUT_SECONDS  (デフォルト: 30。0 以下なら無制限に待つ)
    """
    db_path = get_env("CATFACTS_DB_PATH", default="catfacts.db", required=False)
    timeout = get_env_float("STORE_GATE_TIMEOUT_SECONDS", default=30.0)

    return StoreSettings(
        db_path=db_path,
        gate_timeout_seconds=timeout if timeout > 0 else None,
    )
