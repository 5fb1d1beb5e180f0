"""
Agent actions to manage the replica set cluster.

Actions are single-shot: they either complete (DONE) or fail (FAILED) and are
never retried internally. The replica set configuration is always read from
the server immediately before it is changed.
"""
from abc import ABC, abstractmethod
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, Optional, Type
import copy
import logging

from repliagent.constants import (
    CMD_GET_CMD_LINE_OPTS,
    CMD_REPL_SET_GET_CONFIG,
    CMD_REPL_SET_INITIATE,
    CMD_REPL_SET_RECONFIG,
    DB_ADMIN
)
from repliagent.errors import (
    ActionError,
    AddFailed,
    AlreadyInitialised,
    CommandFailure,
    InitFailed,
    InvalidArgs,
    NoReplicaSetName,
    RsAttr,
    RsConf,
    format_error_chain
)
from repliagent.models.actions import (
    ActionChanges,
    ActionOutcome,
    ActionPhase,
    AddArgs,
    InitArgs
)
from repliagent.models.node import NodeStatusKind
from repliagent.services.gateway import CommandGateway
from repliagent.services.status import node_status

logger = logging.getLogger(__name__)

RS_ATTR_MEMBER_ID = "_id"
RS_ATTR_MEMBERS = "members"
RS_ATTR_VERSION = "version"

# Historically the replica set name was stored under different option names.
REPL_SET_NAME_OPTIONS = ("replSetName", "replSet")


class ActionHandler(ABC):
    """An externally triggered operation on the cluster"""

    name: str = ""
    args_model: Type[BaseModel]

    def __init__(self, gateway: CommandGateway):
        self.gateway = gateway

    def parse_args(self, args: Any) -> BaseModel:
        """Validate caller arguments before any command is sent"""
        try:
            return self.args_model.model_validate(args)
        except ValidationError as e:
            raise InvalidArgs(self.name) from e

    @abstractmethod
    async def invoke(self, args: Any) -> ActionChanges:
        """
        Execute the action

        Raises:
            ActionError: The action failed
        """


async def run_action(handler: ActionHandler, args: Any) -> ActionOutcome:
    """
    Invoke an action and report its terminal phase

    Invalid arguments are raised to the caller; every other action error
    is reported as a FAILED outcome.
    """
    try:
        changes = await handler.invoke(args)
    except InvalidArgs:
        raise
    except ActionError as e:
        reason = format_error_chain(e)
        logger.error(f"Action {handler.name} failed: {reason}")
        return ActionOutcome(action=handler.name, phase=ActionPhase.FAILED, error=reason)

    logger.info(f"Action {handler.name} completed with phase {changes.phase.value}")
    return ActionOutcome(action=handler.name, phase=changes.phase, changes=changes.payload)


class Init(ActionHandler):
    """
    Initialise a MongoDB replica set with the node as its only member.

    The replica set name is read from the node's startup options with
    getCmdLineOpts and the member host is the configured cluster address.
    Settings given in the action arguments are passed to replSetInitiate
    without checks.
    """

    name = "cluster.init"
    args_model = InitArgs

    def __init__(self, gateway: CommandGateway, host: str):
        super().__init__(gateway)
        self.host = host

    def parse_args(self, args: Any) -> InitArgs:
        if args is None:
            return InitArgs()
        return super().parse_args(args)

    async def invoke(self, args: Any) -> ActionChanges:
        args = self.parse_args(args)

        # Check current replica set status on the node.
        status = await node_status(self.gateway)
        if status.kind != NodeStatusKind.NOT_IN_CLUSTER:
            logger.warning(f"Refusing to initialise replica set, node status is {status.kind.value}")
            raise AlreadyInitialised(status.reason or status.kind.value)

        rs_id = await self.replica_set_name()

        # Build replica set initialisation document.
        init: Dict[str, Any] = {
            "_id": rs_id,
            "members": [{"_id": 0, "host": self.host}],
        }
        if args.settings is not None:
            init["settings"] = args.settings

        logger.info(f"Initialising MongoDB replica set with config: {init}")
        try:
            await self.gateway.run(DB_ADMIN, {CMD_REPL_SET_INITIATE: init})
        except CommandFailure as e:
            raise InitFailed() from e

        return ActionChanges.to(ActionPhase.DONE, payload={"config": init})

    async def replica_set_name(self) -> str:
        """Get the replica set name from the node startup options"""
        try:
            options = await self.gateway.run(DB_ADMIN, {CMD_GET_CMD_LINE_OPTS: 1})
        except CommandFailure as e:
            raise InitFailed() from e

        parsed = options.get("parsed")
        replication = parsed.get("replication") if isinstance(parsed, dict) else None
        if not isinstance(replication, dict):
            raise NoReplicaSetName()

        for option in REPL_SET_NAME_OPTIONS:
            name = replication.get(option)
            if isinstance(name, str) and name:
                return name
        raise NoReplicaSetName()


def add_member(config: Dict[str, Any], host: str, member_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Return a copy of a replica set configuration with a new member appended

    The new member gets member_id if given, otherwise the largest ID in use
    plus one (1 for an empty list). The version is incremented by exactly one and every other
    attribute is left untouched.

    Raises:
        RsAttr: members, _id or version is missing or has an unexpected type
        RsConf: a member is not a document
    """
    rs = copy.deepcopy(config)
    members = rs.get(RS_ATTR_MEMBERS)
    if not isinstance(members, list):
        raise RsAttr(RS_ATTR_MEMBERS)

    ids = []
    for member in members:
        if not isinstance(member, dict):
            raise RsConf() from TypeError("elements in members array must be an object")
        mid = member.get(RS_ATTR_MEMBER_ID)
        if isinstance(mid, bool) or not isinstance(mid, int):
            raise RsAttr(RS_ATTR_MEMBER_ID)
        ids.append(mid)

    if member_id is None:
        member_id = max(ids, default=0) + 1
    members.append({"_id": member_id, "host": host})

    version = rs.get(RS_ATTR_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise RsAttr(RS_ATTR_VERSION)
    rs[RS_ATTR_VERSION] = version + 1
    return rs


class Add(ActionHandler):
    """
    Add a node to the replica set with replSetReconfig.

    The reconfiguration is only accepted by the primary: when invoked on
    any other member the server rejects it and the action fails. A
    concurrent reconfiguration is detected by the server through the
    configuration version.
    """

    name = "cluster.add"
    args_model = AddArgs

    async def invoke(self, args: Any) -> ActionChanges:
        args = self.parse_args(args)

        # Get current replica set configuration.
        try:
            reply = await self.gateway.run(DB_ADMIN, {CMD_REPL_SET_GET_CONFIG: 1})
        except CommandFailure as e:
            raise AddFailed() from e

        if "config" not in reply:
            raise RsConf() from ValueError("server did not return replica set configuration")
        config = reply["config"]
        if not isinstance(config, dict):
            raise RsConf() from TypeError("server returned invalid type for rs configuration")

        rs = add_member(config, args.host, args.id)
        node = rs[RS_ATTR_MEMBERS][-1]

        # Reconfigure the replica set.
        logger.info(f"Adding node {node} to replica set (version {rs[RS_ATTR_VERSION]})")
        try:
            await self.gateway.run(DB_ADMIN, {CMD_REPL_SET_RECONFIG: rs})
        except CommandFailure as e:
            raise AddFailed() from e

        return ActionChanges.to(
            ActionPhase.DONE,
            payload={"member": dict(node), "version": rs[RS_ATTR_VERSION]}
        )
