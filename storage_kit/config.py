from pydantic_settings import BaseSettings

from storage_kit.schemas.providers import StorageConfig, StorageProvider, parse_storage_config
from storage_kit.services.handler import StorageKitOptions
from storage_kit.storage.constants import (
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_SIGNED_URL_EXPIRATION,
)


class Settings(BaseSettings):
    # Provider selection
    STORAGE_PROVIDER: str = "minio"  # minio | backblaze | cloudflare-r2 | s3 | gcs | spaces | azure

    # S3-compatible providers
    STORAGE_ENDPOINT: str | None = None
    STORAGE_ACCESS_KEY_ID: str | None = None
    STORAGE_SECRET_ACCESS_KEY: str | None = None
    STORAGE_REGION: str | None = None
    STORAGE_PUBLIC_URL_BASE: str | None = None

    # Azure Blob Storage (connection string, or account name + key)
    AZURE_CONNECTION_STRING: str | None = None
    AZURE_ACCOUNT_NAME: str | None = None
    AZURE_ACCOUNT_KEY: str | None = None

    # Request handling
    DEFAULT_BUCKET: str | None = None
    MAX_FILE_SIZE: int = DEFAULT_MAX_FILE_SIZE
    ALLOWED_MIME_TYPES: list[str] = []  # e.g. ["image/*", "application/pdf"]
    SIGNED_URL_EXPIRATION: int = DEFAULT_SIGNED_URL_EXPIRATION

    LOG_LEVEL: str = "INFO"

    # Read .env, ignore unrelated environment variables
    model_config = {"env_file": ".env", "extra": "ignore"}

    def storage_config(self) -> StorageConfig:
        """
        Build the provider configuration from these settings.

        Raises:
            ValueError: If STORAGE_PROVIDER is unknown
            pydantic.ValidationError: If required credentials are missing
        """
        provider = StorageProvider(self.STORAGE_PROVIDER)
        common = {
            "public_url_base": self.STORAGE_PUBLIC_URL_BASE,
            "default_signed_url_expiration": self.SIGNED_URL_EXPIRATION,
        }

        if provider is StorageProvider.AZURE:
            raw = {
                "connection_string": self.AZURE_CONNECTION_STRING,
                "account_name": self.AZURE_ACCOUNT_NAME,
                "account_key": self.AZURE_ACCOUNT_KEY,
                **common,
            }
        else:
            raw = {
                "endpoint": self.STORAGE_ENDPOINT,
                "access_key_id": self.STORAGE_ACCESS_KEY_ID,
                "secret_access_key": self.STORAGE_SECRET_ACCESS_KEY,
                "region": self.STORAGE_REGION,
                **common,
            }
        return parse_storage_config(raw, provider)

    def kit_options(self) -> StorageKitOptions:
        return StorageKitOptions(
            default_bucket=self.DEFAULT_BUCKET,
            max_file_size=self.MAX_FILE_SIZE,
            allowed_mime_types=list(self.ALLOWED_MIME_TYPES),
        )


settings = Settings()
