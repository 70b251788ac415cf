"""
Key-value persistence backends for the task cache.

- kv_memory.py: dict-backed store (tests, ephemeral runs)
- kv_sqlite.py: durable SQLite store
"""
