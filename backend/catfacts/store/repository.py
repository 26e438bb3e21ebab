# backend/catfacts/store/repository.py

"""
catfacts / subscribers テーブルへの単純なクエリ群。

どの関数もコネクションを引数に取り、StoreAccessor.with_store の中で呼ばれる前提。
ゲートの取得はここでは行わない。

    fact = store.with_store(fetch_random_fact)
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, List, Optional

from .schemas import Fact, Subscriber


def _parse_timestamp(value: Any) -> Optional[datetime]:
    # sqlite の CURRENT_TIMESTAMP は "YYYY-MM-DD HH:MM:SS"（UTC）の文字列
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _row_to_fact(row: Any) -> Fact:
    return Fact(id=row[0], text=row[1], created_at=_parse_timestamp(row[2]))


def _row_to_subscriber(row: Any) -> Subscriber:
    return Subscriber(id=row[0], email=row[1], created_at=_parse_timestamp(row[2]))


def fetch_random_fact(conn: sqlite3.Connection) -> Optional[Fact]:
    """ランダムに 1 件の豆知識を返す。テーブルが空なら None。"""
    row = conn.execute(
        "SELECT id, fact, created_at FROM catfacts ORDER BY random() LIMIT 1"
    ).fetchone()
    if row is None:
        return None
    return _row_to_fact(row)


def insert_fact(conn: sqlite3.Connection, text: str) -> Fact:
    cursor = conn.execute("INSERT INTO catfacts (fact) VALUES (?)", (text,))
    row = conn.execute(
        "SELECT id, fact, created_at FROM catfacts WHERE id = ?",
        (cursor.lastrowid,),
    ).fetchone()
    return _row_to_fact(row)


def count_facts(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM catfacts").fetchone()[0])


def list_subscribers(conn: sqlite3.Connection) -> List[Subscriber]:
    """全購読者を登録順（id 昇順）で返す。"""
    rows = conn.execute(
        "SELECT id, email, created_at FROM subscribers ORDER BY id"
    ).fetchall()
    return [_row_to_subscriber(row) for row in rows]


def find_subscriber_by_email(conn: sqlite3.Connection, email: str) -> Optional[Subscriber]:
    row = conn.execute(
        "SELECT id, email, created_at FROM subscribers WHERE email = ? ORDER BY id LIMIT 1",
        (email,),
    ).fetchone()
    if row is None:
        return None
    return _row_to_subscriber(row)


def insert_subscriber(conn: sqlite3.Connection, email: str) -> Subscriber:
    cursor = conn.execute("INSERT INTO subscribers (email) VALUES (?)", (email,))
    row = conn.execute(
        "SELECT id, email, created_at FROM subscribers WHERE id = ?",
        (cursor.lastrowid,),
    ).fetchone()
    return _row_to_subscriber(row)


def count_subscribers(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM subscribers").fetchone()[0])
