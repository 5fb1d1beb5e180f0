"""
Pytest configuration for integration tests
"""
import pytest
import os
import time
import logging
from typing import Generator

from fastapi.testclient import TestClient

from repliagent.config import Settings
from repliagent.main import create_app

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TEST_NODE_ADDRESS = os.environ.get("REPLIAGENT_TEST_NODE_ADDRESS")
TEST_CLUSTER_ADDRESS = os.environ.get("REPLIAGENT_TEST_CLUSTER_ADDRESS", TEST_NODE_ADDRESS)
FALLBACK_BUILD_INFO = 'Build Info: {"version": "0.0.0", "gitVersion": "integration"}'


@pytest.fixture(scope="session")
def agent_settings(tmp_path_factory) -> Settings:
    """Agent settings pointing at the test node."""
    if TEST_NODE_ADDRESS is None:
        pytest.skip("REPLIAGENT_TEST_NODE_ADDRESS is not set")

    # Fallback for test hosts without mongod on the PATH.
    version_file = tmp_path_factory.mktemp("version") / "mongod.version"
    version_file.write_text(FALLBACK_BUILD_INFO)
    return Settings(
        node_id="integration",
        node_address=TEST_NODE_ADDRESS,
        cluster_address=TEST_CLUSTER_ADDRESS,
        version_file=str(version_file)
    )


@pytest.fixture(scope="session")
def http_client(agent_settings) -> Generator[TestClient, None, None]:
    """HTTP client for API calls."""
    with TestClient(create_app(settings=agent_settings)) as client:
        yield client


def wait_for_condition(condition_fn, timeout=60, interval=2, description="condition"):
    """Wait for a condition to be true."""
    start = time.time()
    while time.time() - start < timeout:
        try:
            if condition_fn():
                return True
        except Exception as e:
            logger.debug(f"Waiting for {description}: {e}")
        time.sleep(interval)
    raise TimeoutError(f"Timeout waiting for {description} after {timeout}s")
