"""In-memory журнал событий пула и подписчики."""

from collections import deque
from typing import Callable, List, Optional

from src.core.domain.events import AnyPoolEvent

EventListener = Callable[[AnyPoolEvent], None]


class EventLog:
    def __init__(self, maxlen: Optional[int] = None) -> None:
        self.events = deque(maxlen=maxlen)
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Подписка на события. Возвращает функцию отписки."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: AnyPoolEvent) -> None:
        self.events.append(event)
        for listener in list(self._listeners):
            listener(event)

    def tail(self, n: int = 200) -> List[AnyPoolEvent]:
        if n <= 0:
            return []
        if n >= len(self.events):
            return list(self.events)
        return list(self.events)[-n:]

    def __len__(self) -> int:
        return len(self.events)
