"""Repository adapters - Database implementations."""

from .memory import (
    InMemoryAttendeeRepository,
    InMemoryEventRepository,
    InMemoryHostRepository,
    InMemoryStore,
)
from .postgres import (
    PostgresAttendeeRepository,
    PostgresEventRepository,
    PostgresHostRepository,
    run_migrations,
)

__all__ = [
    "InMemoryAttendeeRepository",
    "InMemoryEventRepository",
    "InMemoryHostRepository",
    "InMemoryStore",
    "PostgresAttendeeRepository",
    "PostgresEventRepository",
    "PostgresHostRepository",
    "run_migrations",
]
