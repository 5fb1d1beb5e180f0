"""
Model the replica set status into a Shard.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from repliagent.constants import MemberState
from repliagent.errors import ShardExtractError
from repliagent.models.node import Shard, ShardCommitOffset, ShardRole

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

STATE_TO_ROLE = {
    MemberState.PRIMARY: ShardRole.PRIMARY,
    MemberState.SECONDARY: ShardRole.SECONDARY,
    MemberState.RECOVERING: ShardRole.RECOVERING,
    MemberState.STARTUP: ShardRole.RECOVERING,
    MemberState.STARTUP2: ShardRole.RECOVERING,
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def optime_millis(member: Dict[str, Any]) -> int:
    """Convert the optimeDate of a member into milliseconds since the epoch"""
    optime = member.get("optimeDate")
    if not isinstance(optime, datetime):
        raise ShardExtractError("optimeDate", f"member {member.get('name')!r}")
    # pymongo decodes BSON dates as naive UTC datetimes.
    if optime.tzinfo is None:
        optime = optime.replace(tzinfo=timezone.utc)
    return (optime - EPOCH) // timedelta(milliseconds=1)


def find_self(members: List[Any]) -> Dict[str, Any]:
    for member in members:
        if isinstance(member, dict) and member.get("self") is True:
            return member
    raise ShardExtractError("self", "no member is flagged as the node itself")


def find_primary(members: List[Any], self_id: Any) -> Optional[Dict[str, Any]]:
    """Find the primary member, unless the primary is the node itself"""
    for member in members:
        if not isinstance(member, dict):
            continue
        state = member.get("state")
        if _is_int(state) and state == MemberState.PRIMARY and member.get("_id") != self_id:
            return member
    return None


def shard_role(state: MemberState) -> Dict[str, Any]:
    role = STATE_TO_ROLE.get(state)
    if role is None:
        return {"role": ShardRole.OTHER, "role_label": str(state)}
    return {"role": role, "role_label": None}


def shard_from_status(status: Dict[str, Any]) -> Shard:
    """
    Model a replSetGetStatus reply into a Shard

    Args:
        status: Successful replSetGetStatus reply

    Returns:
        Shard: Role, commit offset and lag of the node

    Raises:
        ShardExtractError: A required attribute is missing or mistyped
        MemberStateParseError: The node reports an unknown state code
    """
    members = status.get("members")
    if not isinstance(members, list):
        raise ShardExtractError("members")

    my_self = find_self(members)
    primary = find_primary(members, my_self.get("_id"))

    shard_id = my_self.get("name")
    if not isinstance(shard_id, str):
        raise ShardExtractError("name")

    optime = optime_millis(my_self)

    state = my_self.get("state")
    if not _is_int(state):
        raise ShardExtractError("state")
    state = MemberState.decode(state)

    # Lag may be negative when this node is ahead of what it knows of the primary.
    lag = None
    if primary is not None:
        lag = ShardCommitOffset.milliseconds(optime_millis(primary) - optime)

    return Shard(
        shard_id=shard_id,
        commit_offset=ShardCommitOffset.milliseconds(optime),
        lag=lag,
        **shard_role(state)
    )
