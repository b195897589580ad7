from abc import ABC, abstractmethod

from craftmatch.common.logging import get_logger

MOCK_KEY_PREFIX = "mock_"


class BaseIntegration(ABC):
    """Base class for clients of external services.

    A client built with a placeholder credential (``mock_`` prefix) runs in
    mock mode and must not perform network I/O.
    """

    def __init__(self, name: str, api_key: str = ""):
        self.name = name
        self.logger = get_logger(f"integrations.{name}")
        self._api_key = api_key

    @property
    def is_mock(self) -> bool:
        return self._api_key.startswith(MOCK_KEY_PREFIX)

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the integration is reachable and functional."""
        ...
