"""
Pytest configuration for unit tests
"""
import copy
import pytest
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Union

from repliagent.constants import REPL_SET_NOT_INITIALISED
from repliagent.errors import CommandFailure, FailureKind, VersionDetectError
from repliagent.models.node import StoreVersion
from repliagent.services.gateway import CommandGateway
from repliagent.services.version import StoreVersionStrategy

EPOCH = datetime(1970, 1, 1)

BUILD_INFO = """db version v4.4.13
Build Info: {
    "version": "4.4.13",
    "gitVersion": "df25c71b8674a78e17468f48bcda5285decb9246",
    "openSSLVersion": "OpenSSL 1.1.1f  31 Mar 2020",
    "modules": [],
    "allocator": "tcmalloc",
    "environment": {
        "distmod": "ubuntu2004",
        "distarch": "x86_64",
        "target_arch": "x86_64"
    }
}"""


class FakeGateway(CommandGateway):
    """Answers commands from canned replies and records what was sent"""

    def __init__(self, replies: Optional[Dict[str, Union[Dict, CommandFailure]]] = None):
        super().__init__(client=None)
        self.replies = dict(replies or {})
        self.calls: List[tuple] = []

    def execute(self, database: str, command: Mapping[str, Any]) -> Dict[str, Any]:
        name = next(iter(command))
        self.calls.append((database, name, copy.deepcopy(dict(command))))
        reply = self.replies.get(name)
        if reply is None:
            raise CommandFailure(FailureKind.COMMAND, f"no such command: '{name}'", name, code=59)
        if isinstance(reply, CommandFailure):
            raise reply
        return copy.deepcopy(reply)

    def commands(self) -> List[str]:
        return [name for _, name, _ in self.calls]

    def sent(self, name: str) -> Dict[str, Any]:
        """Return the last command document sent with the given name"""
        for _, called, command in reversed(self.calls):
            if called == name:
                return command
        raise AssertionError(f"command {name} was not sent")


class StubStrategy(StoreVersionStrategy):
    """Version strategy returning a fixed result and counting calls"""

    def __init__(self, number: Optional[str] = None, error: Optional[str] = None):
        self.number = number
        self.error = error
        self.calls = 0

    async def version(self) -> StoreVersion:
        self.calls += 1
        if self.error is not None:
            raise VersionDetectError(self.error)
        return StoreVersion(number=self.number, checkout="abc123")


def failure(kind: FailureKind, code: Optional[int] = None, command: str = "replSetGetStatus") -> CommandFailure:
    return CommandFailure(kind, f"simulated {kind.value} failure", command, code=code)


def not_initialised() -> CommandFailure:
    return CommandFailure(
        FailureKind.COMMAND,
        "no replset config has been received",
        "replSetGetStatus",
        code=REPL_SET_NOT_INITIALISED
    )


def member(mid: int, state: int, optime_ms: int, is_self: bool = False, **extra) -> Dict[str, Any]:
    """Build a member entry of a replSetGetStatus reply"""
    doc = {
        "_id": mid,
        "name": f"node{mid}:27017",
        "health": 1,
        "state": state,
        "optimeDate": EPOCH + timedelta(milliseconds=optime_ms),
    }
    if is_self:
        doc["self"] = True
    doc.update(extra)
    return doc


def rs_status(members: List[Dict[str, Any]], set_name: str = "rs0") -> Dict[str, Any]:
    """Build a replSetGetStatus reply"""
    my_state = next((m.get("state") for m in members if m.get("self")), None)
    status = {"set": set_name, "members": members, "ok": 1.0}
    if my_state is not None:
        status["myState"] = my_state
    return status


def rs_config(member_ids: List[int], version: int = 1) -> Dict[str, Any]:
    """Build a replSetGetConfig reply"""
    return {
        "config": {
            "_id": "rs0",
            "version": version,
            "term": 3,
            "protocolVersion": 1,
            "members": [
                {"_id": mid, "host": f"node{mid}:27017", "priority": 1, "votes": 1}
                for mid in member_ids
            ],
            "settings": {"electionTimeoutMillis": 10000},
        },
        "ok": 1.0,
    }


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
