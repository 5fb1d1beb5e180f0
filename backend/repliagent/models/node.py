from typing import Any, Dict, List, Literal, Optional
from enum import Enum
from pydantic import BaseModel, Field


class NodeStatusKind(str, Enum):
    """Health of the managed node as reported to the host"""
    HEALTHY = "HEALTHY"
    UNHEALTHY = "UNHEALTHY"
    JOINING_CLUSTER = "JOINING_CLUSTER"
    NOT_IN_CLUSTER = "NOT_IN_CLUSTER"
    UNAVAILABLE = "UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


class NodeStatus(BaseModel):
    """Status of the managed node, derived fresh on every query"""
    kind: NodeStatusKind = Field(..., description="Node health")
    reason: Optional[str] = Field(
        None,
        description="Why the status could not be determined (UNKNOWN only)"
    )

    @classmethod
    def of(cls, kind: NodeStatusKind) -> "NodeStatus":
        return cls(kind=kind)

    @classmethod
    def unknown(cls, reason: str) -> "NodeStatus":
        return cls(kind=NodeStatusKind.UNKNOWN, reason=reason)


class ShardRole(str, Enum):
    """Role of the node for the shard it holds"""
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    RECOVERING = "RECOVERING"
    OTHER = "OTHER"


class ShardCommitOffset(BaseModel):
    """Position in the replication history"""
    unit: Literal["milliseconds"] = Field(default="milliseconds", description="Offset unit")
    value: int = Field(..., description="Offset value")

    @classmethod
    def milliseconds(cls, value: int) -> "ShardCommitOffset":
        return cls(unit="milliseconds", value=value)


class Shard(BaseModel):
    """Replica set data held by the node"""
    shard_id: str = Field(..., description="Shard identifier")
    role: ShardRole = Field(..., description="Role of the node for the shard")
    role_label: Optional[str] = Field(
        None,
        description="Member state name when the role is OTHER"
    )
    commit_offset: ShardCommitOffset = Field(..., description="Last applied operation time")
    lag: Optional[ShardCommitOffset] = Field(
        None,
        description="Distance from the primary, if another node is primary"
    )


class ShardsInfo(BaseModel):
    """Shards on the node"""
    shards: List[Shard] = Field(default_factory=list, description="List of shards")


class StoreVersion(BaseModel):
    """Version of the running MongoDB server"""
    number: str = Field(..., description="Version number")
    checkout: Optional[str] = Field(None, description="Source checkout the server was built from")
    extra: Optional[str] = Field(None, description="Additional build information (JSON)")


class Node(BaseModel):
    """Information about the managed node"""
    agent_version: str = Field(..., description="Version of the agent")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Node attributes")
    node_id: str = Field(..., description="Node identifier")
    node_status: NodeStatus = Field(..., description="Node health")
    store_id: str = Field(..., description="Store software identifier")
    store_version: StoreVersion = Field(..., description="Store software version")


class StoreExtras(BaseModel):
    """Store specific information about the node"""
    cluster_id: str = Field(..., description="Replica set name")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Store attributes")
