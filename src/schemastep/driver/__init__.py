"""Storage drivers for schemastep.

Any object implementing the Driver protocol can be passed to the planner,
executor and runner. Two implementations ship with schemastep:

- MemoryDriver: in-memory reference model, used in tests
- SqlDriver: SQLAlchemy-backed driver for relational databases
"""

from schemastep.driver.base import Driver
from schemastep.driver.memory import MemoryDriver
from schemastep.driver.sql import DEFAULT_TABLE, SqlDriver

__all__ = ["DEFAULT_TABLE", "Driver", "MemoryDriver", "SqlDriver"]
