"""Service layer exports."""

from .mock_data import MockGlucoseSource
from .oauth_manager import AuthorizationRequest, OAuthFlowManager
from .state_registry import AuthorizationStateRegistry
from .statistics import calculate_statistics
from .token_cipher import TokenCipherService, TokenDecryptionError
from .token_store import EncryptedTokenStore

__all__ = [
    "AuthorizationRequest",
    "AuthorizationStateRegistry",
    "EncryptedTokenStore",
    "MockGlucoseSource",
    "OAuthFlowManager",
    "TokenCipherService",
    "TokenDecryptionError",
    "calculate_statistics",
]
