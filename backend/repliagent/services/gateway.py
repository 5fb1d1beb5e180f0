from pymongo import MongoClient
from pymongo.errors import (
    ConnectionFailure,
    NotPrimaryError,
    OperationFailure,
    ProtocolError,
    PyMongoError
)
from bson.errors import InvalidBSON, InvalidDocument
from typing import Any, Dict, Mapping, Optional
import asyncio
import logging

from repliagent.config import Settings
from repliagent.constants import AUTHENTICATION_FAILED
from repliagent.errors import CommandFailure, ConfError, FailureKind
from repliagent.services.metrics import observe_mongodb_op

logger = logging.getLogger(__name__)

# Name passed to the MongoDB server from the client.
MONGO_CLIENT_APP_NAME = "repliagent-mongo"

# Connections are always local so long server selection timeouts hurt us.
SERVER_SELECTION_TIMEOUT_MS = 500


def classify_error(error: Exception, command: str) -> CommandFailure:
    """
    Triage a driver error into a CommandFailure

    Args:
        error: Error raised by pymongo or bson
        command: Name of the command that failed

    Returns:
        CommandFailure: The classified failure (not raised)
    """
    message = str(error)

    # NotPrimaryError is an AutoReconnect but it is the server rejecting the command.
    if isinstance(error, NotPrimaryError):
        details = error.details
        code = details.get("code") if isinstance(details, Mapping) else None
        return CommandFailure(FailureKind.COMMAND, message, command, code=code)

    if isinstance(error, ConnectionFailure):
        return CommandFailure(FailureKind.CONNECTION, message, command)

    if isinstance(error, OperationFailure):
        if error.code == AUTHENTICATION_FAILED:
            return CommandFailure(FailureKind.AUTHENTICATION, message, command, code=error.code)
        return CommandFailure(FailureKind.COMMAND, message, command, code=error.code)

    if isinstance(error, (ProtocolError, InvalidBSON, InvalidDocument)):
        return CommandFailure(FailureKind.MALFORMED_REPLY, message, command)

    return CommandFailure(FailureKind.CLIENT, message, command)


class CommandGateway:
    """Issues administrative commands to the single MongoDB node"""

    def __init__(self, client: Optional[MongoClient]):
        """
        Initialize the gateway

        Args:
            client: MongoDB client connected directly to the managed node
        """
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "CommandGateway":
        """Create a gateway with a client configured from agent settings"""
        options: Dict[str, Any] = {
            "directConnection": True,
            "appname": MONGO_CLIENT_APP_NAME,
            "serverSelectionTimeoutMS": SERVER_SELECTION_TIMEOUT_MS,
            "connect": False,
        }
        if settings.connection_timeout_seconds is not None:
            options["connectTimeoutMS"] = settings.connection_timeout_seconds * 1000
        if settings.heartbeat_frequency_seconds is not None:
            options["heartbeatFrequencyMS"] = settings.heartbeat_frequency_seconds * 1000
        if settings.max_idle_time_seconds is not None:
            options["maxIdleTimeMS"] = settings.max_idle_time_seconds * 1000

        if settings.mongo_username is not None:
            options["username"] = settings.mongo_username
            options["password"] = settings.mongo_password
            options["authSource"] = settings.mongo_auth_source
            if settings.mongo_auth_mechanism:
                options["authMechanism"] = settings.mongo_auth_mechanism

        if settings.tls_enabled:
            options["tls"] = True
            options["tlsAllowInvalidCertificates"] = settings.tls_allow_invalid_certificates
            if settings.tls_ca_file:
                options["tlsCAFile"] = settings.tls_ca_file
            if settings.tls_cert_key_file:
                options["tlsCertificateKeyFile"] = settings.tls_cert_key_file

        try:
            client = MongoClient(settings.node_address, **options)
        except (PyMongoError, ValueError, TypeError) as e:
            raise ConfError(
                f"the configured node address is not valid: '{settings.node_address}'"
            ) from e

        logger.info(f"Created MongoDB client for {settings.node_address}")
        return cls(client)

    def execute(self, database: str, command: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Run a command against the node

        Exactly one round trip is made; retries are left to the caller.

        Args:
            database: Logical database name (admin or local)
            command: Command document, command name first

        Returns:
            Dict: The server reply

        Raises:
            CommandFailure: The command did not succeed
        """
        name = next(iter(command))
        with observe_mongodb_op(name):
            try:
                reply = self.client[database].command(command)
            except (PyMongoError, InvalidBSON, InvalidDocument) as e:
                failure = classify_error(e, name)
                logger.debug(f"Error executing {name} against {database}: {failure}")
                raise failure from e

            if not isinstance(reply, Mapping):
                raise CommandFailure(
                    FailureKind.MALFORMED_REPLY,
                    f"expected a document, got {type(reply).__name__}",
                    name
                )
        return dict(reply)

    async def run(self, database: str, command: Mapping[str, Any]) -> Dict[str, Any]:
        """Run a command in a worker thread so the event loop is not blocked"""
        return await asyncio.to_thread(self.execute, database, command)

    def close(self):
        """Close the underlying client"""
        if self.client is not None:
            self.client.close()
            logger.info("Closed MongoDB client")
