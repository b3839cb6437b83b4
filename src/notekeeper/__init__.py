"""
NoteKeeper backend - multi-user notes with optimistic concurrency control.

Every note carries a version number; every accepted write appends an
immutable history row, and stale writes are rejected with enough context
for the client to merge and resolve.
"""

__version__ = "1.0.0"
