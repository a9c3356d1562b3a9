"""Command catalog listing."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter

from idpsync.codec import COMMANDS
from idpsync.schemas.sync import CommandResponse

router = APIRouter()


@router.get("", response_model=List[CommandResponse])
def list_commands() -> List[CommandResponse]:
    return [
        CommandResponse(name=name, sin=command.sin, min=command.min, description=command.description)
        for name, command in sorted(COMMANDS.items())
    ]
