import os
import sys
from collections import defaultdict, deque
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("IDP_ENVIRONMENT", "test")
os.environ.setdefault("IDP_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("IDP_EVENT_TOPIC_ARN", "")
os.environ.setdefault("IDP_LOG_JSON", "false")
os.environ.setdefault("IDP_LOG_LEVEL", "INFO")
os.environ.setdefault("IDP_MAX_POLL_PAGES", "3")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from idpsync.core.config import get_settings

get_settings.cache_clear()

from idpsync.core.database import get_engine, session_scope  # noqa: E402
from idpsync.core.logging import configure_logging  # noqa: E402
from idpsync.events_engine.dispatcher import EventDispatcher, set_event_dispatcher  # noqa: E402
from idpsync.events_engine.publisher import NullEventPublisher  # noqa: E402
from idpsync.gateway.client import set_gateway_client  # noqa: E402
from idpsync.main import create_app  # noqa: E402
from idpsync.models import Base, Mailbox, MessageGateway, Mobile  # noqa: E402
from idpsync.schemas.gateway import (  # noqa: E402
    ForwardStatusesResponse,
    ReturnMessagesResponse,
    SubmitResponse,
)

configure_logging(get_settings())

GATEWAY_URL = "https://gateway.test/GLGW/GWServices_v1/RestMessages.svc"


class StubPublisher:
    def __init__(self) -> None:
        self.envelopes = []

    def publish(self, envelope):
        self.envelopes.append(envelope)


class StubGateway:
    """Scripted gateway: each call pops the next queued response or raises a queued exception."""

    def __init__(self, error_names: Optional[Dict[int, str]] = None) -> None:
        self._queues: Dict[str, Deque[Any]] = defaultdict(deque)
        self.calls: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.error_names = error_names or {}

    def queue(self, operation: str, *responses: Any) -> "StubGateway":
        self._queues[operation].extend(responses)
        return self

    def _next(self, operation: str, **call: Any) -> Any:
        self.calls[operation].append(call)
        if not self._queues[operation]:
            raise AssertionError(f"unexpected {operation} call: {call}")
        response = self._queues[operation].popleft()
        if isinstance(response, Exception):
            raise response
        return response

    def get_return_messages(self, auth, poll, url):
        return self._next("get_return_messages", auth=auth, poll=poll, url=url)

    def get_forward_statuses(self, auth, poll, url):
        return self._next("get_forward_statuses", auth=auth, poll=poll, url=url)

    def submit_messages(self, auth, messages, url):
        return self._next("submit_messages", auth=auth, messages=list(messages), url=url)

    def describe_error(self, error_id: int, url: str) -> str:
        return self.error_names.get(error_id, f"ERROR_{error_id}")


def return_page(messages=None, *, more=False, next_start_id=-1, next_start_utc="") -> ReturnMessagesResponse:
    return ReturnMessagesResponse.model_validate(
        {
            "ErrorID": 0,
            "Messages": messages,
            "More": more,
            "NextStartID": next_start_id,
            "NextStartUTC": next_start_utc,
        }
    )


def status_page(statuses=None, *, more=False, next_start_utc="") -> ForwardStatusesResponse:
    return ForwardStatusesResponse.model_validate(
        {"ErrorID": 0, "Statuses": statuses, "More": more, "NextStartUTC": next_start_utc}
    )


def submit_reply(submissions=None, *, error_id=0) -> SubmitResponse:
    return SubmitResponse.model_validate({"ErrorID": error_id, "Submissions": submissions})


def seed_mailbox(access_id: str = "MB-1", *, gateway_name: str = "primary", alive: bool = True, **fields) -> None:
    with session_scope() as session:
        gateway = session.query(MessageGateway).filter_by(name=gateway_name).one_or_none()
        if gateway is None:
            gateway = MessageGateway(name=gateway_name, url=GATEWAY_URL, alive=alive)
            session.add(gateway)
            session.flush()
        session.add(Mailbox(access_id=access_id, password="secret", gateway=gateway, **fields))


def seed_mobile(mobile_id: str = "01097623SKY2C68", access_id: Optional[str] = "MB-1", **fields) -> None:
    with session_scope() as session:
        session.add(Mobile(mobile_id=mobile_id, access_id=access_id, **fields))


@pytest.fixture(autouse=True)
def reset_database():
    engine = get_engine()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    set_event_dispatcher(
        EventDispatcher(publisher=NullEventPublisher(), default_source="idp_message_sync", max_attempts=2)
    )
    yield
    set_gateway_client(None)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def gateway() -> StubGateway:
    stub = StubGateway(error_names={21785: "ERR_INVALID_MOBILE_ID", 100: "ERR_INVALID_ACCESS_ID"})
    set_gateway_client(stub)
    return stub


@pytest.fixture()
def client(gateway: StubGateway) -> TestClient:  # noqa: ANN001
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def event_dispatcher_stub():
    publisher = StubPublisher()
    dispatcher = EventDispatcher(publisher=publisher, default_source="idp_message_sync", max_attempts=2)
    dispatcher.stub_publisher = publisher  # type: ignore[attr-defined]
    set_event_dispatcher(dispatcher)
    yield dispatcher
    set_event_dispatcher(
        EventDispatcher(publisher=NullEventPublisher(), default_source="idp_message_sync", max_attempts=2)
    )
