"""Firestore stand-ins shared by the test suites."""

import unittest.mock
from typing import Any, Callable

from mockfirestore import CollectionReference, Query
from mockfirestore.document import DocumentReference


def _accept_field_filter(cls: Any) -> None:
    """Let ``cls.where`` take ``filter=FieldFilter(...)`` like the real client."""
    if hasattr(cls, "_positional_where"):
        return
    cls._positional_where = cls.where

    def where(self, *args: Any, filter: Any = None, **kwargs: Any) -> Any:
        if filter is not None:
            args = (filter.field_path, filter.op_string, filter.value)
        return self._positional_where(*args, **kwargs)

    cls.where = where


def patch_mockfirestore() -> None:
    """Teach mockfirestore the keyword forms kickabout calls."""
    _accept_field_filter(CollectionReference)
    _accept_field_filter(Query)

    # document() stores an empty placeholder; Firestore never lists those.
    if not hasattr(CollectionReference, "_all_stream"):
        CollectionReference._all_stream = CollectionReference.stream

        def stream(self, transaction: Any = None) -> Any:
            return (doc for doc in self._all_stream() if doc.exists)

        CollectionReference.stream = stream

    # Reads inside a transaction pass it as a keyword argument.
    if not hasattr(DocumentReference, "_plain_get"):
        DocumentReference._plain_get = DocumentReference.get
        DocumentReference.get = lambda self, field_paths=None, transaction=None: (
            self._plain_get()
        )


class MockTransaction:
    """Queues writes and applies them only when committed."""

    def __init__(self) -> None:
        self.writes: list[tuple[str, Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(("set", ref, data))

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(("update", ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref, None))

    def _real_commit(self) -> None:
        for op, ref, data in self.writes:
            if op == "set":
                ref.set(data)
            elif op == "update":
                ref.update(data)
            else:
                ref.delete()
        self.writes = []


def mock_transactional(func: Callable[..., Any]) -> Callable[..., Any]:
    """Stand-in for firestore.transactional: run once, commit on success."""

    def wrapper(transaction: Any, *args: Any, **kwargs: Any) -> Any:
        result = func(transaction, *args, **kwargs)
        transaction.commit()
        return result

    return wrapper


def install_transactions(db: Any) -> list[MockTransaction]:
    """Make ``db.transaction()`` hand out MockTransactions; returns them as made."""
    created: list[MockTransaction] = []

    def _transaction(**kwargs: Any) -> MockTransaction:
        transaction = MockTransaction()
        created.append(transaction)
        return transaction

    db.transaction = unittest.mock.MagicMock(side_effect=_transaction)
    return created
