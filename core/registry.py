"""
Named provider registry shared by the TTS and email services
"""
from typing import Dict, List, Optional, Any
from core.logger import setup_logger

logger = setup_logger(__name__)

class ProviderNotFoundError(KeyError):
    """Raised when a provider name is not registered"""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} provider '{name}' not found")

    def __str__(self) -> str:
        return self.args[0]

class ProviderRegistry:
    """
    Maps provider names to interchangeable backends exposing one capability.

    Holds a single mutable default provider name. Fallback ordering is
    not the registry's concern; callers keep it as plain configuration.
    """

    def __init__(self, kind: str, default: Optional[str] = None):
        self.kind = kind
        self.providers: Dict[str, Any] = {}
        self._default = default

    def register(self, provider: Any):
        """Register a provider under its ``name`` attribute"""
        self.providers[provider.name] = provider
        logger.debug(f"Registered {self.kind} provider: {provider.name}")

    def get(self, name: str) -> Any:
        """Get provider by name"""
        provider = self.providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(self.kind, name)
        return provider

    def has(self, name: str) -> bool:
        return name in self.providers

    def names(self) -> List[str]:
        """Provider names in registration order"""
        return list(self.providers.keys())

    def all(self) -> List[Any]:
        return list(self.providers.values())

    @property
    def default(self) -> Optional[str]:
        return self._default

    def set_default(self, name: str):
        """Change the default provider; the name must be registered"""
        if not self.has(name):
            raise ProviderNotFoundError(self.kind, name)
        self._default = name
        logger.info(f"Default {self.kind} provider set to: {name}")

    def __len__(self) -> int:
        return len(self.providers)

    def __contains__(self, name: str) -> bool:
        return self.has(name)
