"""
Recipe book core.

This package contains:
- models: Recipe, category, cache entry and filter criteria schemas
- storage: Persistent key-value storage backends used by the cache
- utils.cache: Local read-through cache with TTL and sync timestamps
- utils.normalize: Free-text normalization and duplicate detection
- sync: Read-through + incremental reconcile protocol
- filters: Filter/query composition over recipe collections
- cookbooks: Cookbook aggregation over recipes
- favorites: Locally persisted favorites list
- recipes: Recipe service composing the pieces above
- connectors: Remote document store clients
"""
