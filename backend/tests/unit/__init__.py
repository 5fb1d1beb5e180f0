"""
Unit tests for the MongoDB agent.

These tests never talk to a MongoDB server: commands are answered by the
FakeGateway defined in conftest.py.
"""
