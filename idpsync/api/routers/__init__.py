"""Router registrations."""

from fastapi import APIRouter

from idpsync.api.routers import commands, forward_messages, health, mailboxes, sync


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router, tags=["health"])
    router.include_router(sync.router, prefix="/api/v1/sync", tags=["sync"])
    router.include_router(forward_messages.router, prefix="/api/v1/forward-messages", tags=["forward-messages"])
    router.include_router(commands.router, prefix="/api/v1/commands", tags=["commands"])
    router.include_router(mailboxes.router, prefix="/api/v1/mailboxes", tags=["mailboxes"])
    return router
