"""
Ringside
========

A roster life-cycle engine: employment, injury, suspension, retirement
and activation histories for wrestlers, managers, referees, tag teams,
stables and titles, with cascades from composite entities to their
members and diff-based membership restructuring.

Import structure
----------------
`import ringside` is intentionally cheap: nothing is imported by default.
SQLModel is only loaded by :pymod:`ringside.db` / :pymod:`ringside.store_db`
and *matplotlib* only by :pymod:`ringside.viz`.

Sub-modules
~~~~~~~~~~~
- :pymod:`ringside.models`         – dataclasses + enums (entities, periods, memberships)
- :pymod:`ringside.capabilities`   – static capability matrix and relation rules
- :pymod:`ringside.store`          – ``RosterStore`` protocol + ``MemoryStore``
- :pymod:`ringside.store_db`       – ``DBStore`` on SQLite (SQLModel)
- :pymod:`ringside.status`         – derived status and roster statistics
- :pymod:`ringside.strategies`     – per-capability transition validation
- :pymod:`ringside.cascade`        – composite cascade planner / executor
- :pymod:`ringside.membership`     – partner replacement, merge, split, delete, restore
- :pymod:`ringside.engine`         – ``LifecycleEngine`` facade
- :pymod:`ringside.actions`        – one function per business operation
- :pymod:`ringside.viz`            – plotting helpers (bar chart + graph)

Quick start
-----------
>>> from datetime import datetime
>>> from ringside.engine import LifecycleEngine
>>> from ringside.store import MemoryStore
>>> from ringside.models import EntityType, RosterEntity
>>> from ringside import actions
>>> engine = LifecycleEngine(MemoryStore())
>>> kane = engine.store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
>>> _ = actions.employ(engine, kane.id, datetime(2024, 1, 1))
>>> engine.query_status(kane, datetime(2024, 2, 1)).bookable
True
"""

__all__ = [
    "models",
    "errors",
    "capabilities",
    "settings",
    "store",
    "store_db",
    "db",
    "status",
    "strategies",
    "relationships",
    "cascade",
    "membership",
    "engine",
    "actions",
    "viz",
]

__version__ = "0.1.0"
