# backend/catfacts/store/schema.py

"""
起動時に作成するテーブル定義。

ここでの失敗は致命的で、HTTP サーバやスケジューラを起動する前にプロセスを止める。
"""

from __future__ import annotations

import logging
import sqlite3

from .accessor import StoreAccessor

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS catfacts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        fact TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subscribers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
)


def _create_tables(conn: sqlite3.Connection) -> None:
    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement)


def init_schema(store: StoreAccessor) -> None:
    """catfacts / subscribers テーブルが無ければ作成する。"""
    store.with_store(_create_tables, timeout=None)
    logger.info("Store schema is ready (catfacts, subscribers).")
