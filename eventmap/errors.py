"""
Error taxonomy for the clustering and interaction core.

- NotFound: a cluster id unknown to the current index build
- LoadFailure: the event store could not deliver the point set
- PersistenceFailure: saving or loading the filter mode failed
- CreateFailure: the event store rejected a new event
"""


class EventMapError(Exception):
    """Base class for all eventmap errors."""


class NotFound(EventMapError):
    """Requested entity does not exist in the current index build."""


class ClusterNotFoundError(NotFound):
    """A cluster id that the current index build never produced."""

    def __init__(self, cluster_id: int):
        super().__init__(f"No cluster with the specified id: {cluster_id}")
        self.cluster_id = cluster_id


class LoadFailure(EventMapError):
    """The event store load failed or was cancelled."""


class PersistenceFailure(EventMapError):
    """The filter mode could not be saved or restored."""


class CreateFailure(EventMapError):
    """The event store could not create the event."""
