from fastapi import APIRouter, Body, Depends, HTTPException, Request
from typing import Any, Dict, Optional

from repliagent.errors import InvalidArgs, format_error_chain
from repliagent.models.actions import ActionOutcome
from repliagent.services.actions import ActionHandler, run_action

router = APIRouter()


def get_actions(request: Request) -> Dict[str, ActionHandler]:
    """Action handlers registered at application startup"""
    return request.app.state.actions


@router.get("")
async def list_actions(actions: Dict[str, ActionHandler] = Depends(get_actions)):
    """List the registered actions"""
    return {"actions": sorted(actions)}


@router.post("/{action_name}")
async def invoke_action(
    action_name: str,
    args: Optional[Any] = Body(default=None),
    actions: Dict[str, ActionHandler] = Depends(get_actions)
) -> ActionOutcome:
    """Invoke an action with the JSON request body as its arguments"""
    handler = actions.get(action_name)
    if handler is None:
        raise HTTPException(status_code=404, detail=f"Action '{action_name}' not found")

    try:
        return await run_action(handler, args)
    except InvalidArgs as e:
        raise HTTPException(status_code=400, detail=format_error_chain(e))
