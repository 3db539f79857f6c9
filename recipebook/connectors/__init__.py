"""
Remote document store connectors.

This package contains:
- base: Abstract document store interface and its errors
- memory_store: In-process store for tests and local development
- firestore_connector: Cloud Firestore REST client
"""
