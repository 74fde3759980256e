from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from .bancor_v3_events_task import dry_run_bancor_v3_events_task as subgraph__dry_run_bancor_v3_events_task
from .bancor_v3_events_task import process_bancor_v3_events_task as subgraph__process_bancor_v3_events_task

TaskFn = Callable[..., Awaitable[Any]]

TASKS: dict[str, TaskFn] = {
    "subgraph__process_bancor_v3_events_task": subgraph__process_bancor_v3_events_task,
    "subgraph__dry_run_bancor_v3_events_task": subgraph__dry_run_bancor_v3_events_task,
}
