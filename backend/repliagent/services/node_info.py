from typing import Any, Dict
import logging
import socket

from repliagent.config import Settings
from repliagent.constants import (
    ATTRIBUTE_PREFIX,
    CMD_COLL_STATS,
    CMD_GET_PARAMETER,
    DB_ADMIN,
    DB_LOCAL,
    FEATURE_COMPATIBILITY_VERSION,
    OPLOG_COLLECTION,
    STORE_ID
)
from repliagent.errors import (
    CommandFailure,
    FeatCompatVerNotSet,
    FeatCompatVerUnknown,
    OplogStatsNoSize,
    OplogStatsUnknown,
    ReplicaSetStatusNoName,
    ReplicaSetStatusUnknown
)
from repliagent.models.node import Node, ShardsInfo, StoreExtras
from repliagent.services.gateway import CommandGateway
from repliagent.services.shard import shard_from_status
from repliagent.services.status import node_status, replica_set_status
from repliagent.services.version import StoreVersionChain, configure_strategies

logger = logging.getLogger(__name__)

# Never-changing attributes included in node responses.
STATIC_ATTRIBUTES = {
    f"{ATTRIBUTE_PREFIX}/mode": "replica-set",
}


def detect_node_id(settings: Settings) -> str:
    """Use the configured node ID or fall back to the hostname"""
    if settings.node_id:
        return settings.node_id
    return socket.gethostname()


class MongoInfo:
    """Gathers information about the managed MongoDB node"""

    def __init__(
        self,
        gateway: CommandGateway,
        node_id: str,
        version: StoreVersionChain,
        agent_version: str
    ):
        """
        Initialize node information gathering

        Args:
            gateway: Gateway to the managed node
            node_id: Identifier reported for the node
            version: Store version detection chain
            agent_version: Version of the agent reported with the node
        """
        self.gateway = gateway
        self.node_id = node_id
        self.version = version
        self.agent_version = agent_version

    @classmethod
    def from_settings(cls, gateway: CommandGateway, settings: Settings) -> "MongoInfo":
        node_id = detect_node_id(settings)
        logger.info(f"Reporting MongoDB node as '{node_id}'")
        return cls(
            gateway=gateway,
            node_id=node_id,
            version=configure_strategies(settings),
            agent_version=settings.app_version
        )

    async def node_info(self) -> Node:
        """
        Get information about the node

        Returns:
            Node: Identity, health and store version of the node
        """
        status = await node_status(self.gateway)
        store_version = await self.version.version()
        return Node(
            agent_version=self.agent_version,
            attributes=dict(STATIC_ATTRIBUTES),
            node_id=self.node_id,
            node_status=status,
            store_id=STORE_ID,
            store_version=store_version
        )

    async def _replica_set_status(self) -> Dict[str, Any]:
        try:
            return await replica_set_status(self.gateway)
        except CommandFailure as e:
            raise ReplicaSetStatusUnknown() from e

    async def shards(self) -> ShardsInfo:
        """
        Get the shards on the node

        A replica set member always holds exactly one shard.
        """
        status = await self._replica_set_status()
        shard = shard_from_status(status)
        return ShardsInfo(shards=[shard])

    async def store_info(self) -> StoreExtras:
        """
        Get store specific information

        Returns:
            StoreExtras: Replica set name, oplog size and feature compatibility version
        """
        status = await self._replica_set_status()
        name = status.get("set")
        if not isinstance(name, str):
            raise ReplicaSetStatusNoName()

        attributes: Dict[str, Any] = {
            f"{ATTRIBUTE_PREFIX}/oplog.size": await self.oplog_size(),
            f"{ATTRIBUTE_PREFIX}/feature-compatibility": await self.feature_compatibility_version(),
        }
        return StoreExtras(cluster_id=name, attributes=attributes)

    async def feature_compatibility_version(self) -> str:
        """Lookup the current feature compatibility version (FCV)"""
        command = {CMD_GET_PARAMETER: 1, FEATURE_COMPATIBILITY_VERSION: 1}
        try:
            params = await self.gateway.run(DB_ADMIN, command)
        except CommandFailure as e:
            raise FeatCompatVerUnknown() from e

        fcv = params.get(FEATURE_COMPATIBILITY_VERSION)
        if not isinstance(fcv, dict):
            raise FeatCompatVerUnknown()
        version = fcv.get("version")
        if not isinstance(version, str):
            raise FeatCompatVerNotSet()
        return version

    async def oplog_size(self) -> int:
        """Lookup the oplog collection max size"""
        try:
            stats = await self.gateway.run(DB_LOCAL, {CMD_COLL_STATS: OPLOG_COLLECTION})
        except CommandFailure as e:
            raise OplogStatsUnknown() from e

        max_size = stats.get("maxSize")
        if isinstance(max_size, bool) or not isinstance(max_size, int):
            raise OplogStatsNoSize()
        return int(max_size)
