"""
In-process event dispatch

A registry of event class -> ordered handlers. publish() runs the handlers
synchronously, after the publishing write has already committed:

    dispatcher = EventDispatcher()
    dispatcher.subscribe(ExpenseLogged, on_expense_logged)
    dispatcher.publish(db, ExpenseLogged(user_id=1, household_id=2, category="food"))

Each handler runs in its own transaction. A failing handler is rolled back
and logged; it never fails the publisher and never stops the other handlers.
Handlers must not depend on each other's side effects.
"""
import logging
from functools import lru_cache
from typing import Any, Callable, Dict, List

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

EventHandler = Callable[[Session, Any], None]


class EventDispatcher:
    def __init__(self):
        self._handlers: Dict[type, List[EventHandler]] = {}

    def subscribe(self, event_class: type, handler: EventHandler) -> None:
        """
        Register a handler for an event class

        Note:
            Registration order = call order.
        """
        self._handlers.setdefault(event_class, []).append(handler)

    def handlers_for(self, event_class: type) -> List[EventHandler]:
        return list(self._handlers.get(event_class, []))

    def publish(self, db: Session, event: Any) -> int:
        """
        Deliver an event to every subscribed handler

        Args:
            db: session for the handlers (the publisher has committed already)
            event: event instance; handlers are looked up by its class

        Returns:
            number of handlers that completed successfully
        """
        succeeded = 0
        for handler in self.handlers_for(type(event)):
            name = getattr(handler, "__qualname__", repr(handler))
            try:
                handler(db, event)
                db.commit()
                succeeded += 1
            except Exception:
                db.rollback()
                logger.exception(
                    "Event handler %s failed for %s", name, getattr(event, "event_type", type(event).__name__)
                )
        return succeeded


@lru_cache
def get_dispatcher() -> EventDispatcher:
    """
    Application-wide dispatcher with the default subscribers (singleton)
    """
    from hearth.application.quest_progress import register_quest_handlers

    dispatcher = EventDispatcher()
    register_quest_handlers(dispatcher)
    return dispatcher
