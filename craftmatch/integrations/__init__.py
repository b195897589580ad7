"""CraftMatch external service clients.

All clients implement ``BaseIntegration`` and switch to a local mock mode
when configured with a ``mock_`` credential.
"""

from craftmatch.integrations.ai_client import AIClient
from craftmatch.integrations.auth_provider import AuthProviderClient
from craftmatch.integrations.base import BaseIntegration
from craftmatch.integrations.storage import StorageClient

__all__ = [
    "AIClient",
    "AuthProviderClient",
    "BaseIntegration",
    "StorageClient",
]
