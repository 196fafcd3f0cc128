"""
Provider configuration schemas.

A StorageConfig is a discriminated union on the mandatory ``type`` field:
S3-family providers share S3ProviderConfig, Azure Blob Storage uses
AzureProviderConfig. Field names are snake_case; the camelCase aliases
(``accessKeyId``, ``connectionString``, ...) are accepted too.
"""
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel

from storage_kit.storage.constants import (
    DEFAULT_SIGNED_URL_EXPIRATION,
    MAX_SIGNED_URL_EXPIRATION,
)


class StorageProvider(str, Enum):
    """Provider types supported by Storage Kit."""

    MINIO = "minio"
    BACKBLAZE = "backblaze"
    CLOUDFLARE_R2 = "cloudflare-r2"
    S3 = "s3"
    GCS = "gcs"
    SPACES = "spaces"
    AZURE = "azure"


S3_COMPATIBLE_PROVIDERS = frozenset(
    {
        StorageProvider.MINIO,
        StorageProvider.BACKBLAZE,
        StorageProvider.CLOUDFLARE_R2,
        StorageProvider.S3,
        StorageProvider.GCS,
        StorageProvider.SPACES,
    }
)


class _ProviderConfigBase(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    public_url_base: str | None = None
    """Base URL used to build public file URLs."""

    default_signed_url_expiration: int = Field(
        DEFAULT_SIGNED_URL_EXPIRATION,
        gt=0,
        le=MAX_SIGNED_URL_EXPIRATION,
    )
    """Expiration (seconds) used when a presigned URL request omits one."""


class S3ProviderConfig(_ProviderConfigBase):
    """Configuration for S3-compatible providers (S3, MinIO, R2, B2, GCS, Spaces)."""

    type: Literal["minio", "backblaze", "cloudflare-r2", "s3", "gcs", "spaces"]

    endpoint: str | None = None
    """S3-compatible endpoint URL."""

    access_key_id: str = Field(..., min_length=1)
    secret_access_key: str = Field(..., min_length=1)

    region: str | None = None
    """Region; provider default applies when omitted."""


class AzureProviderConfig(_ProviderConfigBase):
    """
    Configuration for Azure Blob Storage.

    Exactly one credential form is accepted: a connection string, or an
    account name plus account key.
    """

    type: Literal["azure"]

    connection_string: str | None = None
    account_name: str | None = None
    account_key: str | None = None

    @model_validator(mode="after")
    def _check_credentials(self) -> "AzureProviderConfig":
        has_connection_string = bool(self.connection_string)
        has_account = bool(self.account_name) and bool(self.account_key)

        if has_connection_string and (self.account_name or self.account_key):
            raise ValueError(
                "Provide either connection_string or account_name/account_key, not both"
            )
        if not has_connection_string and not has_account:
            raise ValueError(
                "Azure config requires connection_string or both account_name and account_key"
            )
        return self


StorageConfig = Annotated[
    Union[S3ProviderConfig, AzureProviderConfig],
    Field(discriminator="type"),
]

_storage_config_adapter: TypeAdapter[Any] = TypeAdapter(StorageConfig)


def parse_storage_config(
    data: "StorageConfig | Mapping[str, Any]",
    provider: StorageProvider | str | None = None,
) -> S3ProviderConfig | AzureProviderConfig:
    """
    Validate raw provider configuration into a StorageConfig.

    Args:
        data: A config model or a raw mapping
        provider: Provider name used as the discriminant when ``data`` has no
            ``type``; when both are present they must agree

    Returns:
        S3ProviderConfig or AzureProviderConfig

    Raises:
        ValueError: If the provider type is unknown or disagrees with ``data``
        pydantic.ValidationError: If the configuration is structurally invalid
    """
    expected = StorageProvider(provider).value if provider is not None else None

    if isinstance(data, (S3ProviderConfig, AzureProviderConfig)):
        config = data
    else:
        raw = dict(data)
        if "type" not in raw and expected is not None:
            raw["type"] = expected
        config = _storage_config_adapter.validate_python(raw)

    if expected is not None and config.type != expected:
        raise ValueError(
            f"Config type '{config.type}' does not match provider '{expected}'"
        )
    return config
