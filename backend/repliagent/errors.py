"""
Errors raised by the agent.

Every error derives from AgentError so the host surface can catch them in one
place. Underlying causes are always chained with ``raise ... from`` and can be
rendered with format_error_chain.
"""
from enum import Enum
from typing import Any, Optional


class AgentError(Exception):
    """Base class for all agent errors"""


def format_error_chain(error: BaseException) -> str:
    """Render an error and its causes as ``outer: cause: root``."""
    messages = []
    current: Optional[BaseException] = error
    while current is not None:
        message = str(current) or type(current).__name__
        if message not in messages:
            messages.append(message)
        current = current.__cause__
    return ": ".join(messages)


# --- Configuration ---

class ConfError(AgentError):
    """Invalid or incomplete agent configuration"""


# --- Command gateway ---

class FailureKind(str, Enum):
    """Closed classification of failed commands"""
    CONNECTION = "connection"
    AUTHENTICATION = "authentication"
    COMMAND = "command"
    MALFORMED_REPLY = "malformed_reply"
    CLIENT = "client"


class CommandFailure(AgentError):
    """A command sent to the MongoDB node did not succeed"""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        command: str,
        code: Optional[int] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.command = command
        self.code = code

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.command} failed ({self.kind.value}, code {self.code}): {self.message}"
        return f"{self.command} failed ({self.kind.value}): {self.message}"


# --- Member states ---

class MemberStateParseError(AgentError):
    """Unrecognised member state code"""

    def __init__(self, state: Any):
        super().__init__(f"unrecognised member state code {state!r}")
        self.state = state


# --- Node information ---

class InfoError(AgentError):
    """Unable to gather node information"""


class ShardExtractError(InfoError):
    """Replica set status is missing an attribute or has an unexpected type"""

    def __init__(self, attribute: str, detail: Optional[str] = None):
        message = f"replica set status attribute '{attribute}' is missing or has unexpected type"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.attribute = attribute


class ReplicaSetStatusUnknown(InfoError):
    def __init__(self):
        super().__init__("get replica set status command failed")


class ReplicaSetStatusNoName(InfoError):
    def __init__(self):
        super().__init__("output of the replica set status command does not include a set name")


class FeatCompatVerUnknown(InfoError):
    def __init__(self):
        super().__init__("get feature compatibility version command failed")


class FeatCompatVerNotSet(InfoError):
    def __init__(self):
        super().__init__("output of feature compatibility version command does not include a version")


class OplogStatsUnknown(InfoError):
    def __init__(self):
        super().__init__("get oplog collection statistics command failed")


class OplogStatsNoSize(InfoError):
    def __init__(self):
        super().__init__("output of the oplog collection stats command does not include a collection size")


# --- Store version detection ---

class VersionDetectError(AgentError):
    """A store version detection strategy failed"""


class VersionNotFound(VersionDetectError):
    def __init__(self):
        super().__init__("unable to find version information")


class VersionDecodeError(VersionDetectError):
    """Version information was found but could not be decoded"""


# --- Actions ---

class ActionError(AgentError):
    """An action invocation failed"""


class InvalidArgs(ActionError):
    def __init__(self, action: str):
        super().__init__(f"arguments provided to the {action} action are not valid")
        self.action = action


class AlreadyInitialised(ActionError):
    def __init__(self, status: Optional[str] = None):
        message = "the replica set is already initialised"
        if status:
            message = f"{message} (node status: {status})"
        super().__init__(message)
        self.status = status


class NoReplicaSetName(ActionError):
    def __init__(self):
        super().__init__("no replica set name was provided in MongoDB configuration or command")


class InitFailed(ActionError):
    def __init__(self):
        super().__init__("unable to initialise the replica set")


class AddFailed(ActionError):
    def __init__(self):
        super().__init__("unable to add node to replica set")


class RsAttr(ActionError):
    def __init__(self, attribute: str):
        super().__init__(f"attribute '{attribute}' is missing or has unexpected type")
        self.attribute = attribute


class RsConf(ActionError):
    def __init__(self):
        super().__init__("invalid replica set configuration")
