from __future__ import annotations


class FixtureClientError(RuntimeError):
    pass


class SnapshotUnavailable(FixtureClientError):
    """Transient gateway failure; the prediction is retried next tick."""


class ExternalTimeout(SnapshotUnavailable):
    pass


class SnapshotNotFound(FixtureClientError):
    pass


class SnapshotMalformed(FixtureClientError):
    pass
