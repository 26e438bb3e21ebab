"""
ストア層モジュール群。

- config: DB パス・ゲート待ち上限などの設定
- accessor: 単一コネクションを直列化する StoreAccessor（ストアゲート）
- schema: 起動時のテーブル作成
- schemas: Fact / Subscriber の Pydantic モデル
- repository: catfacts / subscribers へのクエリ
- state: プロセス共有の StoreAccessor
"""

from .accessor import StoreAccessor, StoreContentionError, open_store  # noqa: F401
from .config import StoreSettings, get_store_settings  # noqa: F401
from .schemas import Fact, Subscriber  # noqa: F401
