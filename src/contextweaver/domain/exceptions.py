"""Domain exceptions."""


class ServiceError(Exception):
    """Base exception for failures of an external collaborator service."""


class ClassificationError(ServiceError):
    """The topic classification service failed or returned garbage."""


class MemoryRetrievalError(ServiceError):
    """The memory retrieval service failed or returned garbage."""

    def __init__(self, topic: str, message: str = "") -> None:
        """Initialize.

        Args:
            topic: Topic whose retrieval failed.
            message: Error message (optional).
        """
        self.topic = topic
        super().__init__(message or f"Memory retrieval failed for topic {topic!r}")
