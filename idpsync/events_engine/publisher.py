"""Publishers delivering notification events to external transports."""

from __future__ import annotations

import json
import logging
from typing import Dict, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from idpsync.events_engine.schemas import EventEnvelope

LOGGER = logging.getLogger("idpsync.events_engine.publisher")


class EventPublishError(RuntimeError):
    """Raised when a transport rejects or cannot accept an event."""


class EventPublisher(Protocol):
    def publish(self, envelope: EventEnvelope) -> None:
        ...


class NullEventPublisher(EventPublisher):
    """Used when no SNS topic is configured; events are only persisted."""

    def publish(self, envelope: EventEnvelope) -> None:  # noqa: D401
        LOGGER.debug(
            "events_engine_publish_skipped",
            extra={"event_id": str(envelope.event_id), "event_type": envelope.event_type},
        )


class SnsEventPublisher(EventPublisher):
    def __init__(self, *, topic_arn: str, region_name: str) -> None:
        self._topic_arn = topic_arn
        self._client = boto3.client("sns", region_name=region_name)

    def publish(self, envelope: EventEnvelope) -> None:
        attributes: Dict[str, Dict[str, str]] = {
            "event_type": {"DataType": "String", "StringValue": envelope.event_type},
            "source": {"DataType": "String", "StringValue": envelope.source},
        }
        if envelope.subject:
            attributes["subject"] = {"DataType": "String", "StringValue": envelope.subject}
        try:
            self._client.publish(
                TopicArn=self._topic_arn,
                Message=json.dumps(envelope.model_dump(mode="json")),
                MessageAttributes=attributes,
            )
        except (BotoCoreError, ClientError) as exc:
            raise EventPublishError(f"SNS publish to {self._topic_arn} failed: {exc}") from exc
