"""In-memory record store keyed by auto-incremented integer id."""

from threading import Lock
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel

from shopreg.schemas import Record

R = TypeVar("R", bound=Record)


class RecordStore(Generic[R]):
    """Thread-safe in-memory collection of records with monotonically assigned ids.

    The mapping and the id counter are only touched together under one lock.
    Nothing that may block (I/O, remote calls) runs while the lock is held.
    """

    def __init__(self, record_type: type[R]) -> None:
        self._record_type = record_type
        self._data: dict[int, R] = {}
        self._next_id = 1
        self._lock = Lock()

    @property
    def record_type(self) -> type[R]:
        return self._record_type

    def create(self, payload: BaseModel) -> R:
        """Store ``payload`` under the next id and return the stored record.

        No validation happens here; callers validate before creating.
        """
        fields = payload.model_dump(exclude={"id"})
        with self._lock:
            record = self._record_type(id=self._next_id, **fields)
            self._data[record.id] = record
            self._next_id += 1
        return record

    def get(self, record_id: int) -> R | None:
        with self._lock:
            return self._data.get(record_id)

    def list_all(self) -> list[R]:
        """Return a snapshot of all records (no ordering guarantee)."""
        with self._lock:
            return list(self._data.values())

    def filter_by(self, predicate: Callable[[R], bool]) -> list[R]:
        """Return records matching ``predicate``, evaluated under the lock."""
        with self._lock:
            return [record for record in self._data.values() if predicate(record)]

    def count(self) -> int:
        with self._lock:
            return len(self._data)
