"""Sequential execution of one operation against many instances.

Each instance gets its own client, opened and closed around the
operation. A failure on one instance is logged and recorded; iteration
continues with the next one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mssql_tool.core.exceptions import MssqlToolError
from mssql_tool.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from mssql_tool.core.client import MssqlClient


@dataclass(frozen=True)
class InstanceFailure:
    instance: str
    message: str
    exit_code: int


@dataclass
class InstanceBatch:
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    failures: list[InstanceFailure] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return self.failures[0].exit_code if self.failures else 0


def run_on_instances(
    instances: Sequence[str],
    client_factory: Callable[[str], MssqlClient],
    operation: Callable[[MssqlClient, str], Iterable[tuple[Any, ...]]],
) -> InstanceBatch:
    """Run ``operation`` on every instance in order and collect its rows."""
    log = get_logger("instances")
    batch = InstanceBatch()
    for instance in instances:
        try:
            with client_factory(instance) as client:
                rows = list(operation(client, instance))
        except MssqlToolError as e:
            log.warning("instance failed", instance=instance, error=e.message)
            batch.failures.append(
                InstanceFailure(
                    instance=instance, message=e.message, exit_code=e.exit_code
                )
            )
            continue
        log.debug("instance complete", instance=instance, row_count=len(rows))
        batch.rows.extend(rows)
        batch.succeeded.append(instance)
    return batch
