"""
MongoDB server constants
"""
from enum import IntEnum
from typing import Any

from repliagent.errors import MemberStateParseError

# Databases
DB_ADMIN = "admin"
DB_LOCAL = "local"

# Commands
CMD_COLL_STATS = "collStats"
CMD_GET_CMD_LINE_OPTS = "getCmdLineOpts"
CMD_GET_PARAMETER = "getParameter"
CMD_REPL_SET_GET_CONFIG = "replSetGetConfig"
CMD_REPL_SET_GET_STATUS = "replSetGetStatus"
CMD_REPL_SET_INITIATE = "replSetInitiate"
CMD_REPL_SET_RECONFIG = "replSetReconfig"

FEATURE_COMPATIBILITY_VERSION = "featureCompatibilityVersion"
OPLOG_COLLECTION = "oplog.rs"

# Server error codes
AUTHENTICATION_FAILED = 18
REPL_SET_NOT_INITIALISED = 94

# Reported node attributes
ATTRIBUTE_PREFIX = "mongo"
STORE_ID = "mongo.replica"


class MemberState(IntEnum):
    """
    Possible states of a MongoDB replica set member.

    https://www.mongodb.com/docs/manual/reference/replica-states/
    """
    STARTUP = 0
    PRIMARY = 1
    SECONDARY = 2
    RECOVERING = 3
    STARTUP2 = 5
    UNKNOWN = 6
    ARBITER = 7
    DOWN = 8
    ROLLBACK = 9
    REMOVED = 10

    def __str__(self) -> str:
        return self.name

    @classmethod
    def decode(cls, code: Any) -> "MemberState":
        """
        Map a server state code to a MemberState

        Raises:
            MemberStateParseError: code is not an integer or not a known state
        """
        # bool is an int subclass but never a valid state.
        if isinstance(code, bool) or not isinstance(code, int):
            raise MemberStateParseError(code)
        try:
            return cls(code)
        except ValueError:
            raise MemberStateParseError(code) from None

    def encode(self) -> int:
        return int(self)
