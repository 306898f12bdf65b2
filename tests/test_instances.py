"""Tests for the per-instance execution loop."""

from unittest.mock import MagicMock

import pytest

from mssql_tool.core.exceptions import AuthenticationError, InputError, NetworkError
from mssql_tool.core.instances import InstanceBatch, InstanceFailure, run_on_instances


def _factory(opened):
    def make(instance):
        client = MagicMock()
        client.__enter__.return_value = client
        client.__exit__.return_value = False
        client.instance = instance
        opened.append(client)
        return client

    return make


@pytest.mark.unit
def test_rows_collected_in_instance_order():
    opened = []
    batch = run_on_instances(
        ["a", "b"], _factory(opened), lambda client, inst: [(inst, 1), (inst, 2)]
    )
    assert batch.rows == [("a", 1), ("a", 2), ("b", 1), ("b", 2)]
    assert batch.succeeded == ["a", "b"]
    assert batch.failures == []
    assert batch.exit_code == 0
    assert all(c.__exit__.called for c in opened)


@pytest.mark.unit
def test_failure_recorded_and_loop_continues():
    def operation(client, inst):
        if inst == "bad":
            raise NetworkError("Connection failed to bad: unreachable")
        return [(inst,)]

    batch = run_on_instances(["a", "bad", "c"], _factory([]), operation)
    assert batch.rows == [("a",), ("c",)]
    assert batch.succeeded == ["a", "c"]
    assert batch.failures == [
        InstanceFailure("bad", "Connection failed to bad: unreachable", 5)
    ]


@pytest.mark.unit
def test_exit_code_is_first_failure():
    def operation(client, inst):
        if inst == "x":
            raise AuthenticationError("Login failed")
        raise InputError("Database not found")

    batch = run_on_instances(["x", "y"], _factory([]), operation)
    assert batch.exit_code == AuthenticationError.exit_code
    assert len(batch.failures) == 2


@pytest.mark.unit
def test_factory_failure_is_recorded():
    def factory(instance):
        raise NetworkError(f"Connection failed to {instance}")

    batch = run_on_instances(["a"], factory, lambda client, inst: [])
    assert batch.failures[0].instance == "a"
    assert batch.rows == []


@pytest.mark.unit
def test_unexpected_errors_propagate():
    def operation(client, inst):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        run_on_instances(["a"], _factory([]), operation)


@pytest.mark.unit
def test_partial_rows_discarded_on_failure():
    def operation(client, inst):
        yield (inst, 1)
        raise InputError("halfway")

    batch = run_on_instances(["a"], _factory([]), operation)
    assert batch.rows == []


@pytest.mark.unit
def test_empty_batch():
    assert InstanceBatch().exit_code == 0
