from typing import Any, Dict, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class ActionPhase(str, Enum):
    """Terminal phase of an action invocation"""
    DONE = "DONE"
    FAILED = "FAILED"


class ActionChanges(BaseModel):
    """Changes an action handler asks the host to record"""
    phase: ActionPhase = Field(..., description="Phase to transition the action to")
    payload: Optional[Dict[str, Any]] = Field(None, description="Structured result of the action")

    @classmethod
    def to(cls, phase: ActionPhase, payload: Optional[Dict[str, Any]] = None) -> "ActionChanges":
        return cls(phase=phase, payload=payload)


class ActionOutcome(BaseModel):
    """Response from an action invocation"""
    action: str = Field(..., description="Action that was invoked")
    phase: ActionPhase = Field(..., description="Terminal phase reached")
    error: Optional[str] = Field(None, description="Failure reason with its causes")
    changes: Optional[Dict[str, Any]] = Field(None, description="Structured changes made by the action")


class InitArgs(BaseModel):
    """Arguments to customise replica set initialisation"""
    settings: Optional[Dict[str, Any]] = Field(
        None,
        description="Settings passed unchecked to the replSetInitiate command"
    )


class AddArgs(BaseModel):
    """Arguments to add a new node to the replica set"""
    model_config = ConfigDict(populate_by_name=True)

    host: StrictStr = Field(
        ...,
        alias="node",
        min_length=1,
        description="Value of the new node for the host attribute"
    )
    id: Optional[StrictInt] = Field(
        None,
        ge=0,
        description="Value for the new node _id attribute (largest in use + 1 if not set)"
    )
