from abc import ABC, abstractmethod


class EventPublisherPort(ABC):
    @abstractmethod
    def publish(self, event: object) -> None:
        """Best-effort fan-out of a domain event to interested dashboards."""
        raise NotImplementedError
