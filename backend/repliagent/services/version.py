"""
Detect the store version for replica set members.

Strategies are tried in order and the first to succeed wins. The default
chain runs ``mongod --version`` and then, if configured, reads a file holding
the same output.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union
import asyncio
import json
import logging
import os
import re

from repliagent.config import Settings
from repliagent.errors import VersionDecodeError, VersionDetectError, VersionNotFound
from repliagent.models.node import StoreVersion

logger = logging.getLogger(__name__)

BUILD_INFO_EXTRACT = re.compile(r"Build Info: (\{.*\})", re.DOTALL)

DEFAULT_VERSION_COMMAND = ["mongod", "--version"]
DEFAULT_VERSION_COMMAND_TIMEOUT = 10.0


def decode_build_info(data: Union[bytes, str]) -> StoreVersion:
    """
    Decode the output of ``mongod --version`` into a StoreVersion

    Example output this function parses:

        db version v4.4.13
        Build Info: {
            "version": "4.4.13",
            "gitVersion": "df25c71b8674a78e17468f48bcda5285decb9246",
            "openSSLVersion": "OpenSSL 1.1.1f  31 Mar 2020",
            "modules": [],
            "allocator": "tcmalloc",
            "environment": {...}
        }

    Raises:
        VersionNotFound: No build info block in the data
        VersionDecodeError: The build info block is not valid
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise VersionDecodeError("version information is not valid UTF-8") from e

    match = BUILD_INFO_EXTRACT.search(data)
    if match is None:
        raise VersionNotFound()

    try:
        build_info = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise VersionDecodeError("build information is not valid JSON") from e
    if not isinstance(build_info, dict):
        raise VersionDecodeError("build information is not an object")

    number = build_info.pop("version", None)
    checkout = build_info.pop("gitVersion", None)
    if not isinstance(number, str):
        raise VersionDecodeError("build information does not include a version")
    if not isinstance(checkout, str):
        raise VersionDecodeError("build information does not include a gitVersion")

    return StoreVersion(
        number=number,
        checkout=checkout,
        extra=json.dumps(build_info, separators=(",", ":"), ensure_ascii=False)
    )


class StoreVersionStrategy(ABC):
    """A way to detect the store version"""

    @abstractmethod
    async def version(self) -> StoreVersion:
        """
        Detect the store version

        Raises:
            VersionDetectError: The strategy could not determine the version
        """


class CommandVersionStrategy(StoreVersionStrategy):
    """Run a command and decode its output"""

    def __init__(
        self,
        command: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: float = DEFAULT_VERSION_COMMAND_TIMEOUT
    ):
        self.command = list(command or DEFAULT_VERSION_COMMAND)
        self.env = dict(env or {})
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"CommandVersionStrategy({' '.join(self.command)})"

    async def version(self) -> StoreVersion:
        env = None
        if self.env:
            env = {**os.environ, **self.env}

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env
            )
        except OSError as e:
            raise VersionDetectError(f"unable to run version command {self.command[0]!r}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise VersionDetectError(
                f"version command did not complete within {self.timeout} seconds"
            ) from e

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise VersionDetectError(
                f"version command exited with code {process.returncode}: {detail}"
            )
        return decode_build_info(stdout)


class FileVersionStrategy(StoreVersionStrategy):
    """Read a file and decode its content"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"FileVersionStrategy({self.path})"

    async def version(self) -> StoreVersion:
        try:
            data = await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise VersionDetectError(f"unable to read version file '{self.path}'") from e
        return decode_build_info(data)


class StoreVersionChain:
    """Try version detection strategies in order until one succeeds"""

    def __init__(self, strategies: Optional[List[StoreVersionStrategy]] = None):
        self.strategies: List[StoreVersionStrategy] = list(strategies or [])

    def strategy(self, strategy: StoreVersionStrategy) -> "StoreVersionChain":
        """Append a strategy to the end of the chain"""
        self.strategies.append(strategy)
        return self

    async def version(self) -> StoreVersion:
        """
        Detect the store version with the first successful strategy

        Raises:
            VersionDetectError: The last failure if every strategy failed
        """
        last_error: Optional[VersionDetectError] = None
        for strategy in self.strategies:
            try:
                return await strategy.version()
            except VersionDetectError as e:
                logger.debug(f"Version detection with {strategy!r} failed: {e}")
                last_error = e

        if last_error is None:
            raise VersionDetectError("no store version detection strategies configured")
        raise last_error


def configure_strategies(settings: Settings) -> StoreVersionChain:
    """Configure the store version detection strategies"""
    # Try checking the mongod command first.
    chain = StoreVersionChain()
    chain.strategy(CommandVersionStrategy(
        settings.version_command,
        settings.version_command_env,
        timeout=settings.version_command_timeout_seconds
    ))

    # Try checking a version file after.
    if settings.version_file:
        chain.strategy(FileVersionStrategy(settings.version_file))
    return chain
