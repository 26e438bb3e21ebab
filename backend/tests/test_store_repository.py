# backend/tests/test_store_repository.py
from datetime import datetime

from catfacts.store.accessor import StoreAccessor
from catfacts.store.repository import (
    count_facts,
    count_subscribers,
    fetch_random_fact,
    find_subscriber_by_email,
    insert_fact,
    insert_subscriber,
    list_subscribers,
)
from catfacts.store.schema import init_schema


def test_fetch_random_fact_returns_none_when_table_is_empty(store: StoreAccessor) -> None:
    assert store.with_store(fetch_random_fact) is None


def test_inserted_fact_is_returned_with_identical_text(store: StoreAccessor) -> None:
    created = store.with_store(lambda conn: insert_fact(conn, "Cats sleep 12-16 hours a day."))

    fetched = store.with_store(fetch_random_fact)

    assert fetched is not None
    assert fetched.id == created.id
    assert fetched.text == "Cats sleep 12-16 hours a day."
    assert isinstance(fetched.created_at, datetime)


def test_random_fact_is_one_of_the_stored_facts(store: StoreAccessor) -> None:
    texts = {"fact one", "fact two", "fact three"}
    for text in texts:
        store.with_store(lambda conn, t=text: insert_fact(conn, t))

    for _ in range(10):
        fact = store.with_store(fetch_random_fact)
        assert fact is not None
        assert fact.text in texts

    assert store.with_store(count_facts) == 3


def test_subscribers_are_listed_in_registration_order(store: StoreAccessor) -> None:
    for email in ("c@example.com", "a@example.com", "b@example.com"):
        store.with_store(lambda conn, e=email: insert_subscriber(conn, e))

    subscribers = store.with_store(list_subscribers)

    assert [s.email for s in subscribers] == ["c@example.com", "a@example.com", "b@example.com"]
    assert [s.id for s in subscribers] == [1, 2, 3]
    assert store.with_store(count_subscribers) == 3


def test_find_subscriber_by_email(store: StoreAccessor) -> None:
    store.with_store(lambda conn: insert_subscriber(conn, "tom@example.com"))

    found = store.with_store(lambda conn: find_subscriber_by_email(conn, "tom@example.com"))
    missing = store.with_store(lambda conn: find_subscriber_by_email(conn, "jerry@example.com"))

    assert found is not None and found.email == "tom@example.com"
    assert missing is None


def test_init_schema_is_idempotent(store: StoreAccessor) -> None:
    store.with_store(lambda conn: insert_fact(conn, "still here"))

    init_schema(store)

    assert store.with_store(count_facts) == 1
