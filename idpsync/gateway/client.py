"""HTTP client for the satellite messaging gateway REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Sequence, Type, TypeVar

import httpx
from pydantic import ValidationError

from idpsync.core.config import get_settings
from idpsync.core.errors import GatewayProtocolError, GatewayTransportError
from idpsync.schemas.gateway import (
    ForwardMessage,
    ForwardStatusesResponse,
    GatewayAuth,
    GatewayModel,
    PollFilter,
    ReturnMessagesResponse,
    SubmitResponse,
)

logger = logging.getLogger("idpsync.gateway.client")

ResponseT = TypeVar("ResponseT", bound=GatewayModel)

# Statuses that mean "try again later" rather than "this request is wrong".
_RETRYABLE_STATUS = frozenset({408, 429})


class GatewayApi(Protocol):
    """Operations the sync services need from a gateway."""

    def get_return_messages(self, auth: GatewayAuth, poll: PollFilter, url: str) -> ReturnMessagesResponse:
        ...

    def get_forward_statuses(self, auth: GatewayAuth, poll: PollFilter, url: str) -> ForwardStatusesResponse:
        ...

    def submit_messages(self, auth: GatewayAuth, messages: Sequence[ForwardMessage], url: str) -> SubmitResponse:
        ...

    def describe_error(self, error_id: int, url: str) -> str:
        ...


class IdpGatewayClient:
    """Synchronous gateway client.

    The gateway URL is passed per call because each mailbox may live on a
    different gateway. Error descriptions are fetched once per gateway URL
    and cached for the life of the client.
    """

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._timeout = timeout if timeout is not None else get_settings().gateway_timeout_seconds
        self._client = httpx.Client(timeout=self._timeout, transport=transport)
        self._error_descriptions: Dict[str, Dict[int, str]] = {}

    def close(self) -> None:
        self._client.close()

    def get_return_messages(self, auth: GatewayAuth, poll: PollFilter, url: str) -> ReturnMessagesResponse:
        params = self._auth_params(auth)
        if poll.start_message_id is not None:
            params["from_id"] = poll.start_message_id
        else:
            params["start_utc"] = poll.start_time_utc
        params["include_raw_payload"] = "true"
        params["include_type"] = "true"
        body = self._request("GET", url, "get_return_messages.json/", params=params)
        return self._parse(ReturnMessagesResponse, body, url)

    def get_forward_statuses(self, auth: GatewayAuth, poll: PollFilter, url: str) -> ForwardStatusesResponse:
        if poll.start_time_utc is None:
            raise ValueError("get_forward_statuses only accepts a time cursor")
        params = self._auth_params(auth)
        params["start_utc"] = poll.start_time_utc
        body = self._request("GET", url, "get_forward_statuses.json/", params=params)
        return self._parse(ForwardStatusesResponse, body, url)

    def submit_messages(self, auth: GatewayAuth, messages: Sequence[ForwardMessage], url: str) -> SubmitResponse:
        payload = {
            "accessID": auth.access_id,
            "password": auth.password,
            "messages": [message.to_wire() for message in messages],
        }
        body = self._request("POST", url, "submit_messages.json/", json=payload)
        return self._parse(SubmitResponse, body, url)

    def describe_error(self, error_id: int, url: str) -> str:
        """Return the gateway's name for ``error_id``; falls back to ``ERROR_<id>``."""

        fallback = f"ERROR_{error_id}"
        descriptions = self._error_descriptions.get(url)
        if descriptions is None:
            try:
                body = self._request("GET", url, "get_errors.json/")
            except (GatewayTransportError, GatewayProtocolError) as exc:
                logger.warning(
                    "gateway_error_catalog_unavailable",
                    extra={"gateway_url": url, "error_id": error_id, "error": str(exc)},
                )
                return fallback
            descriptions = {}
            for entry in body if isinstance(body, list) else []:
                if isinstance(entry, dict) and "ID" in entry:
                    descriptions[int(entry["ID"])] = str(entry.get("Name") or entry.get("Description") or "")
            self._error_descriptions[url] = descriptions
        return descriptions.get(error_id) or fallback

    @staticmethod
    def _auth_params(auth: GatewayAuth) -> Dict[str, Any]:
        return {"access_id": auth.access_id, "password": auth.password}

    def _request(self, method: str, base_url: str, path: str, **kwargs: Any) -> Any:
        endpoint = f"{base_url.rstrip('/')}/{path}"
        try:
            response = self._client.request(method, endpoint, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error(
                "gateway_http_error",
                extra={"gateway_url": base_url, "path": path, "status_code": status},
            )
            if status >= 500 or status in _RETRYABLE_STATUS:
                raise GatewayTransportError(
                    f"Gateway returned HTTP {status}", gateway_url=base_url, status_code=status
                ) from exc
            raise GatewayProtocolError(
                f"Gateway rejected request with HTTP {status}", gateway_url=base_url, status_code=status
            ) from exc
        except httpx.TransportError as exc:
            logger.error(
                "gateway_request_error",
                extra={"gateway_url": base_url, "path": path, "error": str(exc)},
            )
            raise GatewayTransportError(f"Failed to reach gateway: {exc}", gateway_url=base_url) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise GatewayProtocolError(
                "Gateway returned a non-JSON body", gateway_url=base_url, status_code=response.status_code
            ) from exc

    @staticmethod
    def _parse(model: Type[ResponseT], body: Any, url: str) -> ResponseT:
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            raise GatewayProtocolError(
                f"Unexpected {model.__name__} body: {exc.error_count()} validation errors",
                gateway_url=url,
            ) from exc


_gateway_client: Optional[GatewayApi] = None


def get_gateway_client() -> GatewayApi:
    """Get or create the gateway client singleton."""

    global _gateway_client
    if _gateway_client is None:
        _gateway_client = IdpGatewayClient()
    return _gateway_client


def set_gateway_client(client: Optional[GatewayApi]) -> None:
    """Override the cached gateway client (primarily for tests)."""

    global _gateway_client
    _gateway_client = client


def close_gateway_client() -> None:
    """Close the cached client's connection pool, if one was created."""

    global _gateway_client
    if isinstance(_gateway_client, IdpGatewayClient):
        _gateway_client.close()
    _gateway_client = None
