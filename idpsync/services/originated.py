"""Ingestion of mobile-originated (return) messages."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from idpsync.codec import Telemetry, decode_message, is_vendor_locked
from idpsync.codec.schemas import CORE_SIN
from idpsync.models.api_call_log import GatewayOperation
from idpsync.models.categories import RecordCategory
from idpsync.models.gateway import Mailbox, MessageGateway
from idpsync.schemas.gateway import GatewayAuth, PollFilter, ReturnMessage, ReturnMessagesResponse
from idpsync.services.message_store import InsertOutcome
from idpsync.services.polling import GatewayPoller


class OriginatedPoller(GatewayPoller):
    operation = GatewayOperation.GET_RETURN_MESSAGES
    supports_id_cursor = True

    def _fetch(self, auth: GatewayAuth, poll: PollFilter, url: str) -> ReturnMessagesResponse:
        return self._gateway.get_return_messages(auth, poll, url)

    def _items(self, response: ReturnMessagesResponse) -> List[ReturnMessage]:
        return response.messages

    def _process(self, mailbox: Mailbox, gateway: MessageGateway, items: List[ReturnMessage]) -> int:
        inserted = 0
        for message in items:
            telemetry = self._decode(message)
            values = self._message_values(mailbox, message)
            if telemetry is not None:
                values["decoded"] = telemetry.to_record()
            outcome = self._store.insert_if_absent(RecordCategory.MOBILE_ORIGINATED, values)
            if outcome is InsertOutcome.ALREADY_PRESENT:
                self._logger.debug(
                    "return_message_duplicate",
                    extra={"message_id": message.message_id, "access_id": mailbox.access_id},
                )
                continue

            inserted += 1
            mobile_values = self._mobile_values(mailbox, message)
            if telemetry is not None:
                mobile_values.update(telemetry.mobile_updates())
            self._store.upsert_merge(RecordCategory.MOBILE, mobile_values)
            if telemetry is not None:
                self._notifier.telemetry_decoded(telemetry, message_id=message.message_id)

        self._logger.info(
            "return_messages_ingested",
            extra={"access_id": mailbox.access_id, "received": len(items), "inserted": inserted},
        )
        return inserted

    def _decode(self, message: ReturnMessage) -> Optional[Telemetry]:
        if message.sin == CORE_SIN or is_vendor_locked(message):
            return decode_message(message)
        self._logger.info(
            "return_message_schema_skipped",
            extra={"message_id": message.message_id, "sin": message.sin, "min": message.min},
        )
        return None

    def _message_values(self, mailbox: Mailbox, message: ReturnMessage) -> Dict[str, Any]:
        payload = message.payload
        return {
            "message_id": message.message_id,
            "mobile_id": message.mobile_id,
            "access_id": mailbox.access_id,
            "sin": message.sin,
            "min": message.min,
            "name": payload.name if payload is not None else None,
            "message_utc": message.message_utc,
            "receive_utc": message.receive_utc,
            "region_name": message.region_name,
            "ota_message_size": message.ota_message_size,
            "raw_payload": bytes(message.raw_payload) if message.raw_payload else None,
            "payload": payload.model_dump(by_alias=True, exclude_none=True) if payload is not None else None,
            "ttl_days": self._settings.message_ttl_days,
        }

    @staticmethod
    def _mobile_values(mailbox: Mailbox, message: ReturnMessage) -> Dict[str, Any]:
        values: Dict[str, Any] = {"mobile_id": message.mobile_id, "access_id": mailbox.access_id}
        received = message.receive_utc or message.message_utc
        if received is not None:
            values["last_message_received"] = received
        if message.region_name:
            values["last_satellite_region"] = message.region_name
        return values
