from collections import defaultdict
from typing import Callable, DefaultDict, List, Optional

from logging_config import setup_logger

logger = setup_logger("Events")

# callback(collection, action, record_id)
Subscriber = Callable[[str, str, Optional[str]], None]


class ChangeNotifier:
    """
    In-process publish/subscribe for collection changes.

    Directories publish after every successful write; dashboard views
    subscribe and refresh instead of polling on a timer.
    """

    def __init__(self):
        self._subscribers: DefaultDict[str, List[Subscriber]] = defaultdict(list)

    def subscribe(self, collection: str, callback: Subscriber):
        self._subscribers[collection].append(callback)

    def unsubscribe(self, collection: str, callback: Subscriber):
        if callback in self._subscribers[collection]:
            self._subscribers[collection].remove(callback)

    def publish(self, collection: str, action: str, record_id: Optional[str] = None):
        logger.debug(f"{collection}: {action} {record_id or ''}")
        for callback in list(self._subscribers[collection]):
            try:
                callback(collection, action, record_id)
            except Exception as e:
                # The write already happened; a broken listener must not undo it
                logger.error(f"Subscriber failed for {collection}/{action}: {e}", exc_info=True)


class RevisionTracker:
    """Counts changes per collection so a dashboard can tell when to refetch."""

    def __init__(self, notifier: ChangeNotifier, collections):
        self.revisions = {name: 0 for name in collections}
        for name in collections:
            notifier.subscribe(name, self._bump)

    def _bump(self, collection: str, action: str, record_id: Optional[str]):
        self.revisions[collection] = self.revisions.get(collection, 0) + 1
