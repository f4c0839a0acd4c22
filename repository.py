from typing import Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError

from db import KeyValueStore
from events import ChangeNotifier
from exceptions import StorageError
from logging_config import setup_logger

logger = setup_logger("Repository")

T = TypeVar("T")


class JsonCollectionRepository(Generic[T]):
    """
    A collection of records stored as one JSON array under a single key.

    Every mutation reads the whole array, changes it in memory and writes the
    whole array back. Records must expose an ``id`` attribute and ``to_json()``.
    """

    def __init__(self, store: KeyValueStore, key: str, model: Type[T], notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.key = key
        self.model = model
        self.notifier = notifier

    def list(self) -> List[T]:
        raw = self.store.get(self.key) or []
        try:
            return [self.model.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.error(f"Stored '{self.key}' does not match {self.model.__name__}: {e}")
            raise StorageError(f"Failed to load {self.key}.") from e

    def get_by_id(self, record_id: str) -> Optional[T]:
        return next((r for r in self.list() if r.id == record_id), None)

    def save_all(self, records: List[T], action: str = "save", record_id: Optional[str] = None):
        self.store.set(self.key, [r.to_json() for r in records])
        if self.notifier:
            self.notifier.publish(self.key, action, record_id)

    def upsert(self, record: T) -> T:
        records = self.list()
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record
                self.save_all(records, "update", record.id)
                return record
        records.append(record)
        self.save_all(records, "create", record.id)
        return record

    def delete(self, record_id: str) -> bool:
        """Removes a record; returns False (and writes nothing) if it was absent."""
        records = self.list()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False
        self.save_all(remaining, "delete", record_id)
        return True

    def clear(self):
        self.store.delete(self.key)
        if self.notifier:
            self.notifier.publish(self.key, "clear", None)
