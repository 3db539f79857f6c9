"""
Stateless helpers and the local cache.

This package contains:
- cache: Read-through cache with TTL and sync timestamps
- normalize: Free-text normalization and duplicate detection
- timestamps: Parsing of document timestamps
"""
