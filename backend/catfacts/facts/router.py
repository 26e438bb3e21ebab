# backend/catfacts/facts/router.py

import sqlite3

from fastapi import APIRouter, Depends, HTTPException, status

from catfacts.api.errors import store_error_to_http
from catfacts.store.accessor import StoreAccessor, StoreContentionError
from catfacts.store.repository import fetch_random_fact, insert_fact
from catfacts.store.state import get_store_accessor

from .schemas import CatFact, CatFactCreateRequest, CatFactCreateResponse

router = APIRouter(prefix="/catfact", tags=["catfact"])


@router.get(
    "",
    response_model=CatFact,
    summary="猫の豆知識をランダムに 1 件取得",
)
def get_random_fact(
    store: StoreAccessor = Depends(get_store_accessor),
) -> CatFact:
    """
    登録済みの豆知識からランダムに 1 件返す。

    - 豆知識が 1 件も無い場合 → 404
    - ストアエラー → 500 / ゲート待ちタイムアウト → 503
    """
    try:
        fact = store.with_store(fetch_random_fact)
    except (StoreContentionError, sqlite3.Error) as exc:
        raise store_error_to_http(exc) from exc

    if fact is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No cat facts stored yet.",
        )

    return CatFact(fact=fact.text)


@router.post(
    "/create",
    response_model=CatFactCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="猫の豆知識を登録",
)
def create_fact(
    body: CatFactCreateRequest,
    store: StoreAccessor = Depends(get_store_accessor),
) -> CatFactCreateResponse:
    try:
        fact = store.with_store(lambda conn: insert_fact(conn, body.fact))
    except (StoreContentionError, sqlite3.Error) as exc:
        raise store_error_to_http(exc) from exc

    return CatFactCreateResponse(id=fact.id, fact=fact.text)
