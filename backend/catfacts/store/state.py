# backend/catfacts/store/state.py

"""
プロセス全体で共有する StoreAccessor の状態管理モジュール。

- HTTP ハンドラ（FastAPI の Depends）とスケジューラが同じインスタンスを参照する
- 起動処理（runner.bootstrap）で set_store_accessor() してから使う
- テスト時にリセットできるようにする
"""

from __future__ import annotations

from typing import Optional

from .accessor import StoreAccessor, open_store
from .config import get_store_settings
from .schema import init_schema

_store_accessor: Optional[StoreAccessor] = None


def get_store_accessor() -> StoreAccessor:
    """
    共有の StoreAccessor インスタンスを返す。

    起動処理で設定されていない場合（uvicorn で app を直接起動した場合など）は
    初回呼び出し時に環境変数の設定でコネクションを開き、テーブルも用意する。
    """
    global _store_accessor
    if _store_accessor is None:
        store = open_store(get_store_settings())
        init_schema(store)
        _store_accessor = store
    return _store_accessor


def set_store_accessor(store: StoreAccessor) -> None:
    global _store_accessor
    _store_accessor = store


def reset_state() -> None:
    """
    テスト用に StoreAccessor のシングルトン状態をリセットする。
    """
    global _store_accessor
    _store_accessor = None
