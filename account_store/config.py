"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class AccountStoreConfig(BaseSettings):
    """Account store configuration"""

    model_config = SettingsConfigDict(
        env_prefix="ACCOUNT_STORE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Store files
    store_path: Path = Path("accounts.txt")
    staging_path: Path = Path("temp_accounts.txt")  # plaintext, written before sealing
    cleanup_staging: bool = False

    # At-rest obfuscation (legacy XOR stream, not real encryption)
    encryption_provider: str = "xor"  # xor or noop
    encryption_passphrase: str = "your_secret_key_here"

    # Account numbering
    first_account_number: int = 1000

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    @property
    def lock_path(self) -> Path:
        """File the advisory lock is taken against"""
        return self.store_path


# Global configuration instance
config = AccountStoreConfig()


def get_config() -> AccountStoreConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> AccountStoreConfig:
    """Reload configuration from environment"""
    global config
    config = AccountStoreConfig()
    return config
