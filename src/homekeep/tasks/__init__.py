"""
Task subsystem.

Components:
- task_models.py: task record helpers and timestamp parsing/formatting
- task_cache.py: per-user snapshot cache with a sync watermark
- task_sync.py: incremental sync (cache -> remote delta -> merge -> cache)
- task_store.py: SQLite-backed task store (local stand-in for the remote store)
- task_cleanup.py: deletion of long-archived tasks
"""
