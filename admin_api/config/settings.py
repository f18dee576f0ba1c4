"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    # MongoDB
    MONGODB_URI: str = "mongodb://mongo.librechat.svc.cluster.local:27017"
    DB_NAME: str = "LibreChat"
    MONGODB_TIMEOUT_MS: int = 5000

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    LOG_LEVEL: str = "INFO"

    # Kubernetes
    KUBE_NAMESPACES: str = "librechat,snow-mcp,default"
    KUBECTL_ALLOWED_COMMANDS: str = "get,describe,logs,top,explain"
    KUBECTL_DEFAULT_NAMESPACE: str = "librechat"

    # CORS
    ALLOWED_ORIGINS: str = "*"

    @property
    def namespaces_list(self) -> list[str]:
        return _split(self.KUBE_NAMESPACES)

    @property
    def allowed_commands_list(self) -> list[str]:
        return _split(self.KUBECTL_ALLOWED_COMMANDS)

    @property
    def allowed_origins_list(self) -> list[str]:
        return _split(self.ALLOWED_ORIGINS)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
