"""
repliagent Integration Tests

This test suite talks to a real mongod started with --replSet to verify the
agent end to end. Tests are designed to run in sequence as they depend on
cluster state from previous tests.

Set REPLIAGENT_TEST_NODE_ADDRESS (for example localhost:27100) to run them.
"""
