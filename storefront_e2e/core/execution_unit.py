# storefront_e2e/core/execution_unit.py
"""
Execution Unit Identity

An execution unit is one parallel worker driving a sequence of scenarios.
Session isolation is keyed on it: each unit gets its own engine, browser,
context and page.
"""

import os
import threading
from dataclasses import dataclass

XDIST_WORKER_ENV = "PYTEST_XDIST_WORKER"


@dataclass(frozen=True)
class ExecutionUnit:
    """Stable, hashable identity of a parallel worker."""

    name: str

    def __post_init__(self):
        if not self.name:
            raise ValueError("Execution unit name must not be empty")

    def __str__(self) -> str:
        return self.name


def current_execution_unit() -> ExecutionUnit:
    """
    Resolve the calling worker's execution unit.

    Combines the pytest-xdist worker id (``main`` outside xdist) with the
    current thread name and thread identifier. Thread names are not unique,
    so the identifier keeps two live threads of the same name apart; the
    name only makes the unit readable in logs and artifact names.
    """
    worker = os.environ.get(XDIST_WORKER_ENV, "main")
    thread = threading.current_thread()
    return ExecutionUnit(f"{worker}-{thread.name}-{threading.get_ident()}")
