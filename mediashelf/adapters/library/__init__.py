"""Library persistence adapters.

The service layer talks to ``AbstractLibraryStore``; the in-memory store is
the default and a relational backend can replace it without route changes.
"""
