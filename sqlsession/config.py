"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./sessions.db"
    session_secret: str = "change-me-in-production"
    session_encryption_key: str = ""  # Empty = sign only
    session_previous_secret: str = ""  # Still accepted for decoding during rotation
    session_previous_encryption_key: str = ""
    session_cookie_name: str = "session"
    session_path: str = "/"
    session_domain: str = ""
    session_max_age: int = 14 * 24 * 3600
    session_token_max_age: int = 30 * 24 * 3600
    session_https_only: bool = False
    session_same_site: str = "lax"

    @property
    def key_pairs(self) -> list[str | None]:
        """Hash/block key pairs, newest first."""
        keys: list[str | None] = [self.session_secret, self.session_encryption_key or None]
        if self.session_previous_secret:
            keys += [self.session_previous_secret, self.session_previous_encryption_key or None]
        return keys

    model_config = {"env_prefix": "", "case_sensitive": False}


settings: Settings | None = None


def get_settings() -> Settings:
    global settings
    if settings is None:
        settings = Settings()
    return settings


def override_settings(s: Settings) -> None:
    """For testing: inject a Settings instance."""
    global settings
    settings = s
