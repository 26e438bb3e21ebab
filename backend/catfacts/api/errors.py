# backend/catfacts/api/errors.py

"""
ストア由来の例外を HTTP エラーに変換するヘルパー。

- StoreContentionError → 503（ゲート待ちの上限超過。時間をおいて再試行してもらう）
- sqlite3.Error        → 500（ストアのエラーメッセージをそのまま detail に入れる）
"""

import logging
import sqlite3

from fastapi import HTTPException, status

from catfacts.store.accessor import StoreContentionError

logger = logging.getLogger(__name__)


def store_error_to_http(exc: Exception) -> HTTPException:
    if isinstance(exc, StoreContentionError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        )
    if isinstance(exc, sqlite3.Error):
        logger.error("Store query failed: %s", exc)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        )
    raise TypeError(f"Not a store error: {exc!r}") from exc
