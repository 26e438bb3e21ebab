# backend/catfacts/automation/state.py

"""
DispatchHistory のシンプルな状態管理モジュール。

- スケジューラとダッシュボード API で共有する DispatchHistory インスタンスを提供
- テスト時にリセットできるようにする
"""

from __future__ import annotations

from typing import Optional

from .history import DispatchHistory

_dispatch_history: Optional[DispatchHistory] = None


def get_dispatch_history() -> DispatchHistory:
    """
    共有の DispatchHistory インスタンスを返す。

    初回呼び出し時にのみ生成し、それ以降は同じインスタンスを返す。
    """
    global _dispatch_history
    if _dispatch_history is None:
        _dispatch_history = DispatchHistory()
    return _dispatch_history


def reset_state() -> None:
    """
    テスト用に DispatchHistory のシングルトン状態をリセットする。
    """
    global _dispatch_history
    _dispatch_history = None
