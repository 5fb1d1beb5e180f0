"""
Detect the node status for replica set members.

The replSetGetStatus command is the only source of truth: connection errors
mean the node process is unreachable, the "not yet initialised" error means
the node is not part of a cluster, and otherwise the member state reported by
the node decides its health.
"""
from typing import Any, Dict, Union
import logging

from repliagent.constants import (
    CMD_REPL_SET_GET_STATUS,
    DB_ADMIN,
    REPL_SET_NOT_INITIALISED,
    MemberState
)
from repliagent.errors import CommandFailure, FailureKind, MemberStateParseError
from repliagent.models.node import NodeStatus, NodeStatusKind
from repliagent.services.gateway import CommandGateway

logger = logging.getLogger(__name__)

STATE_TO_STATUS = {
    MemberState.STARTUP: NodeStatusKind.UNHEALTHY,
    MemberState.RECOVERING: NodeStatusKind.UNHEALTHY,
    MemberState.ROLLBACK: NodeStatusKind.UNHEALTHY,
    MemberState.PRIMARY: NodeStatusKind.HEALTHY,
    MemberState.SECONDARY: NodeStatusKind.HEALTHY,
    MemberState.STARTUP2: NodeStatusKind.JOINING_CLUSTER,
    MemberState.REMOVED: NodeStatusKind.NOT_IN_CLUSTER,
}

UNAVAILABLE_FAILURES = (FailureKind.CONNECTION, FailureKind.AUTHENTICATION)


def replica_set_not_initialised(failure: CommandFailure) -> bool:
    """
    Check if a replSetGetStatus failure means the replica set is not initialised.

    Only a True result is conclusive: other failures do not mean the replica
    set is initialised, only that we can't be sure it is not.
    """
    return failure.kind == FailureKind.COMMAND and failure.code == REPL_SET_NOT_INITIALISED


def status_for_failure(failure: CommandFailure) -> NodeStatus:
    """Determine the NodeStatus from a failed replSetGetStatus command"""
    if failure.kind in UNAVAILABLE_FAILURES:
        return NodeStatus.of(NodeStatusKind.UNAVAILABLE)
    if replica_set_not_initialised(failure):
        return NodeStatus.of(NodeStatusKind.NOT_IN_CLUSTER)
    return NodeStatus.unknown(str(failure))


def status_for_reply(reply: Dict[str, Any]) -> NodeStatus:
    """Determine the NodeStatus from a replSetGetStatus reply"""
    code = reply.get("myState", MemberState.UNKNOWN.value)
    try:
        state = MemberState.decode(code)
    except MemberStateParseError as e:
        return NodeStatus.unknown(str(e))

    kind = STATE_TO_STATUS.get(state)
    if kind is None:
        return NodeStatus.unknown(f"unable to determine status for state {state}")
    return NodeStatus.of(kind)


def interpret(result: Union[Dict[str, Any], CommandFailure]) -> NodeStatus:
    """
    Translate the outcome of a replSetGetStatus command into a NodeStatus

    Args:
        result: The command reply, or the failure raised by the gateway

    Returns:
        NodeStatus: Health of the managed node
    """
    if isinstance(result, CommandFailure):
        return status_for_failure(result)
    return status_for_reply(result)


async def replica_set_status(gateway: CommandGateway) -> Dict[str, Any]:
    """Run the replSetGetStatus command against the node"""
    return await gateway.run(DB_ADMIN, {CMD_REPL_SET_GET_STATUS: 1})


async def node_status(gateway: CommandGateway) -> NodeStatus:
    """Get the current NodeStatus of the managed node"""
    try:
        result = await replica_set_status(gateway)
    except CommandFailure as e:
        logger.debug(f"Error executing {CMD_REPL_SET_GET_STATUS}: {e}")
        result = e
    return interpret(result)
