"""
Service layer.

Each service encapsulates the business logic of one concern: the
segment store, the membership index, state persistence and the manager
that ties them together.  API handlers only talk to ``SegmentManager``.
"""
