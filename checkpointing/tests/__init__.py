"""
Test suite for the checkpoint store.

Focus areas:
- Canonical serialization and digest stability
- Ordered key-value backends
- Store operations and the reverse-scan short-circuit
- Verified status transitions
"""
