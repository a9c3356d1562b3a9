"""Events Engine package: notification outbox and publishers."""

from .dispatcher import EventDispatcher, get_event_dispatcher, set_event_dispatcher  # noqa: F401
from .schemas import EventEnvelope  # noqa: F401
