"""
Configuration management for the AAD token engine
"""

import os
from pathlib import Path
from typing import List, Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import AADResource, ProviderSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # AAD application registration
    aad_provider_id: str = "azure_publicCloud"
    aad_client_id: str = "a69788c6-1d43-44ed-9ca3-b83e194da255"
    aad_login_endpoint: str = "https://login.microsoftonline.com/"
    aad_redirect_uri: str = "https://login.microsoftonline.com/common/oauth2/nativeclient"

    # Bootstrap resource used for sign-in and refresh
    management_resource_id: str = "marm"
    management_resource_url: str = "https://management.core.windows.net/"

    # Resource Manager, used for tenant discovery
    arm_resource_id: str = "arm"
    arm_resource_url: str = "https://management.azure.com/"

    # Implementation Selection (for Dependency Injection)
    auth_flow: Literal["device_code", "authorization_code"] = "device_code"
    secret_store: Literal["sqlite", "memory"] = "sqlite"

    # Secret storage
    secret_store_path: str = os.getenv(
        'SECRET_STORE_PATH', str(Path.home() / '.aad-token-engine' / 'secrets.db')
    )
    keyring_service_name: str = "aad-token-engine"

    # Tenants the user chose to ignore when re-authentication is requested
    tenant_filter: List[str] = []
    tenant_filter_path: Optional[str] = None

    http_timeout_seconds: float = 30.0
    log_level: str = "info"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    @property
    def secret_store_path_resolved(self) -> Path:
        """Get resolved secret store path"""
        return Path(self.secret_store_path).expanduser().resolve()

    @property
    def tenant_filter_path_resolved(self) -> Optional[Path]:
        """Get resolved tenant filter path, if persistence is configured"""
        if not self.tenant_filter_path:
            return None
        return Path(self.tenant_filter_path).expanduser().resolve()

    @property
    def provider_settings(self) -> ProviderSettings:
        """Build the provider description consumed by the engine"""
        return ProviderSettings(
            id=self.aad_provider_id,
            client_id=self.aad_client_id,
            login_endpoint=self.aad_login_endpoint,
            redirect_uri=self.aad_redirect_uri,
            windows_management_resource=AADResource(
                id=self.management_resource_id,
                resource=self.management_resource_url,
            ),
            azure_management_resource=AADResource(
                id=self.arm_resource_id,
                resource=self.arm_resource_url,
            ),
        )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings singleton"""
    global _settings
    if _settings is None:
        load_dotenv_if_exists()

        import structlog
        logger = structlog.get_logger(__name__)

        try:
            _settings = Settings()
        except Exception as e:
            raise ValueError(f"Invalid configuration. Check your environment and .env file: {e}") from e

        logger.info("Settings loaded",
                    provider_id=_settings.aad_provider_id,
                    auth_flow=_settings.auth_flow,
                    secret_store=_settings.secret_store)
    return _settings


def load_dotenv_if_exists() -> None:
    """Load .env file if it exists"""
    from dotenv import load_dotenv

    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)
    else:
        # Try to load from parent directories
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            env_path = parent / ".env"
            if env_path.exists():
                load_dotenv(env_path)
                break
