"""SQLAlchemy ORM models for the sync engine."""

from idpsync.models.base import Base  # noqa: F401
from idpsync.models.gateway import Mailbox, MessageGateway  # noqa: F401
from idpsync.models.mobile import Mobile  # noqa: F401
from idpsync.models.message import ForwardState, OriginatedMessage, TerminatedMessage  # noqa: F401
from idpsync.models.api_call_log import ApiCallLog, GatewayOperation  # noqa: F401
from idpsync.models.platform_event import PlatformEvent  # noqa: F401
from idpsync.models.categories import RecordCategory  # noqa: F401
