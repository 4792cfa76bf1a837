"""Persistence for the store catalog.

- base: repository contract; every store read is joined with its reviews
- catalog / postgres: PostgreSQL repository, engine and sessions
- memory: in-process repository (STORAGE_BACKEND=memory, tests)
- redis: short-lived locks serializing slug assignment

Ranking and search semantics live in services; stores only fetch rows.
"""
