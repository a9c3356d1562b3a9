"""Decode gateway field arrays into typed telemetry."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from idpsync.codec.schemas import SCHEMAS
from idpsync.codec.telemetry import Telemetry
from idpsync.schemas.gateway import ReturnMessage

logger = logging.getLogger("idpsync.codec.decoder")

VENDOR_LOCK_SCHEMA = (15, 255)


def is_vendor_locked(message: ReturnMessage) -> bool:
    return (message.sin, message.min) == VENDOR_LOCK_SCHEMA


def decode_message(message: ReturnMessage) -> Optional[Telemetry]:
    """Return typed telemetry for ``message``, or ``None`` when no decode table applies.

    Decoding is lenient: unknown fields and unusable values are logged and
    dropped so that firmware adding fields never blocks ingestion.
    """

    log_context = {"message_id": message.message_id, "mobile_id": message.mobile_id}
    if is_vendor_locked(message):
        logger.warning("mobile_vendor_locked", extra=log_context)
        return None

    payload = message.payload
    if payload is None:
        logger.debug("codec_no_field_payload", extra={**log_context, "sin": message.sin, "min": message.min})
        return None

    schema = SCHEMAS.get((payload.sin, payload.min))
    if schema is None:
        logger.info("codec_schema_unsupported", extra={**log_context, "sin": payload.sin, "min": payload.min})
        return None

    values: Dict[str, Any] = {}
    for field in payload.fields:
        rule = schema.fields.get(field.name)
        if rule is None:
            logger.warning("codec_unknown_field", extra={**log_context, "schema": schema.name, "field": field.name})
            continue
        try:
            values[rule.attribute] = rule.transform(field)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "codec_field_invalid",
                extra={**log_context, "schema": schema.name, "field": field.name, "error": str(exc)},
            )

    received = message.message_utc or message.receive_utc
    if schema.finalize is not None:
        try:
            values = schema.finalize(values, received)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "codec_finalize_failed",
                extra={**log_context, "schema": schema.name, "error": str(exc)},
            )
            return None

    return schema.model(
        mobile_id=message.mobile_id,
        name=payload.name or schema.name,
        sin=payload.sin,
        min=payload.min,
        timestamp=received,
        **values,
    )
