"""
Provider registry.

Holds one backend per configured provider. Construction is eager and
all-or-nothing: either every configured provider builds, or the constructor
raises and no registry exists.
"""
from typing import Any, Callable, Iterator, Mapping

from storage_kit.logging_config import setup_logging
from storage_kit.schemas.providers import (
    StorageConfig,
    StorageProvider,
    parse_storage_config,
)
from storage_kit.storage.base import StorageBackend
from storage_kit.storage.exceptions import ErrorCode, StorageError
from storage_kit.storage.factory import create_storage_backend

logger = setup_logging()

BackendFactory = Callable[[StorageProvider, Any], StorageBackend]


def _provider_key(name: StorageProvider | str) -> str:
    return name.value if isinstance(name, StorageProvider) else name


class ProviderRegistry:
    """
    Name to backend mapping built from provider configurations.

    Example:
        registry = ProviderRegistry({
            "minio": {"endpoint": "http://localhost:9000", ...},
            "azure": {"connection_string": "..."},
        })
        backend = registry.get("azure")
    """

    def __init__(
        self,
        providers: Mapping[str, "StorageConfig | Mapping[str, Any] | None"],
        backend_factory: BackendFactory = create_storage_backend,
        *,
        _prebuilt: Mapping[str, StorageBackend] | None = None,
    ):
        """
        Build every configured backend.

        Args:
            providers: Provider name to configuration; None entries are skipped
            backend_factory: Builds a backend from (provider, config)
            _prebuilt: Backend instances used as-is instead of ``providers``;
                see from_backends()

        Raises:
            StorageError: PROVIDER_ERROR if any provider name is unknown, any
                configuration is invalid or any backend fails to build
        """
        if _prebuilt is not None:
            backends = {_provider_key(name): b for name, b in _prebuilt.items()}
            configs: dict[str, StorageConfig | None] = {name: None for name in backends}
        else:
            backends, configs = self._build(providers, backend_factory)

        self._backends = backends
        self._configs = configs
        logger.info(
            f"Storage provider registry initialized with: {', '.join(backends) or 'none'}"
        )

    @staticmethod
    def _build(
        providers: Mapping[str, "StorageConfig | Mapping[str, Any] | None"],
        backend_factory: BackendFactory,
    ) -> tuple[dict[str, StorageBackend], dict[str, StorageConfig | None]]:
        backends: dict[str, StorageBackend] = {}
        configs: dict[str, StorageConfig | None] = {}

        for name, raw_config in providers.items():
            if raw_config is None:
                continue
            key = _provider_key(name)
            try:
                provider = StorageProvider(key)
                config = parse_storage_config(raw_config, provider)
                backends[key] = backend_factory(provider, config)
            except Exception as e:
                logger.error(f"Failed to initialize storage provider '{key}': {str(e)}")
                raise StorageError(
                    ErrorCode.PROVIDER_ERROR,
                    f"Failed to initialize provider '{key}': {str(e)}",
                    {"providerName": key, "originalError": str(e)},
                ) from e
            configs[key] = config
        return backends, configs

    @classmethod
    def from_backends(cls, backends: Mapping[str, StorageBackend]) -> "ProviderRegistry":
        """Registry over prebuilt backend instances (custom backends, tests)."""
        return cls({}, _prebuilt=backends)

    def get(self, name: StorageProvider | str) -> StorageBackend:
        """
        Get the backend registered under ``name``.

        Raises:
            StorageError: PROVIDER_NOT_CONFIGURED if no such provider
        """
        key = _provider_key(name)
        backend = self._backends.get(key)
        if backend is None:
            raise StorageError(
                ErrorCode.PROVIDER_NOT_CONFIGURED,
                f"Provider '{key}' is not configured",
                {
                    "requestedProvider": key,
                    "availableProviders": self.list_provider_names(),
                },
            )
        return backend

    def has(self, name: StorageProvider | str) -> bool:
        return _provider_key(name) in self._backends

    def list_provider_names(self) -> list[str]:
        """Provider names in registration order."""
        return list(self._backends)

    def get_config(self, name: StorageProvider | str) -> StorageConfig | None:
        """Validated config of ``name``; None for prebuilt or unknown backends."""
        return self._configs.get(_provider_key(name))

    def __len__(self) -> int:
        return len(self._backends)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._backends)
