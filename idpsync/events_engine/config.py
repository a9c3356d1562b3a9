"""Configuration helpers for the events engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from idpsync.core.config import AppSettings, get_settings


@dataclass
class EventEngineConfig:
    """Resolved notification settings; no topic means events are stored but not sent."""

    topic_arn: Optional[str]
    source: str
    region: str


def get_event_engine_config(settings: Optional[AppSettings] = None) -> EventEngineConfig:
    settings = settings or get_settings()
    return EventEngineConfig(
        topic_arn=settings.event_topic_arn,
        source=settings.event_source,
        region=settings.aws_region,
    )
