"""Exception handlers for the FastAPI app."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from idpsync.codec import UnknownCommandError
from idpsync.core.errors import DataIntegrityError, GatewayProtocolError
from idpsync.services.submitter import InvalidSubmissionError


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DataIntegrityError)
    async def data_integrity_handler(request: Request, exc: DataIntegrityError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=404, content={"detail": str(exc), "error_kind": exc.kind.value})

    @app.exception_handler(UnknownCommandError)
    async def unknown_command_handler(request: Request, exc: UnknownCommandError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "valid_commands": exc.valid_commands},
        )

    @app.exception_handler(InvalidSubmissionError)
    async def invalid_submission_handler(request: Request, exc: InvalidSubmissionError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(GatewayProtocolError)
    async def gateway_protocol_handler(request: Request, exc: GatewayProtocolError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(
            status_code=502,
            content={"detail": str(exc), "error_kind": exc.kind.value, "gateway_url": exc.gateway_url},
        )
