from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from trainhub.api.commands import CommandDispatcher
from trainhub.dependencies import get_dispatcher

router = APIRouter(prefix="/v1/commands", tags=["commands"])


@router.get("")
async def list_commands(dispatcher: CommandDispatcher = Depends(get_dispatcher)) -> dict[str, list[str]]:
    return {"commands": dispatcher.command_names()}


@router.post("/{name}")
async def run_command(
    name: str,
    payload: dict[str, Any] | None = Body(default=None),
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
) -> dict[str, Any]:
    if not dispatcher.has_command(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="unknown_command")
    result = await dispatcher.dispatch(name, payload)
    return result.envelope()
