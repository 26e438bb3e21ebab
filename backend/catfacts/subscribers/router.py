# backend/catfacts/subscribers/router.py

import sqlite3

from fastapi import APIRouter, Depends, HTTPException, status

from catfacts.api.errors import store_error_to_http
from catfacts.notifications.factory import get_mailing_list_client
from catfacts.store.accessor import StoreAccessor, StoreContentionError
from catfacts.store.state import get_store_accessor

from .schemas import SubscribeRequest, SubscribeResponse
from .service import DuplicateSubscriberError, SubscriberService

router = APIRouter(tags=["subscribers"])


def get_subscriber_service(
    store: StoreAccessor = Depends(get_store_accessor),
) -> SubscriberService:
    """
    SubscriberService を組み立てる依存関数。

    テストでは dependency_overrides で差し替える。
    """
    return SubscriberService(store, mailing_list=get_mailing_list_client())


@router.post(
    "/subscribe",
    response_model=SubscribeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="日次メールの購読者を登録",
)
def subscribe(
    body: SubscribeRequest,
    service: SubscriberService = Depends(get_subscriber_service),
) -> SubscribeResponse:
    """
    - 不正な形式のアドレス → 422
    - 登録済みのアドレス → 409
    - ストアエラー → 500 / ゲート待ちタイムアウト → 503
    """
    try:
        subscriber = service.register(body.email)
    except DuplicateSubscriberError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except (StoreContentionError, sqlite3.Error) as exc:
        raise store_error_to_http(exc) from exc

    return SubscribeResponse(id=subscriber.id, email=subscriber.email)
