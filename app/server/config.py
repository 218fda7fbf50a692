"""FastAPI server configuration."""

import dataclasses
import json
import logging.config
import os
from pathlib import Path

import dotenv
from singleton import Singleton

dotenv.load_dotenv()


def _split_list(value: str | None) -> list[str]:
    if value and "[" in value:
        return json.loads(value)
    if value:
        return [s.strip() for s in value.split(",") if s.strip()]
    return []


@dataclasses.dataclass
class Settings(metaclass=Singleton):
    """Server config settings."""

    root_url: str = os.getenv("DOMAIN") or "http://localhost:8080"
    project_name: str = os.getenv("PROJECT_NAME") or "config-service"
    base_dir: Path = Path(__file__).resolve().parent.parent
    base_path: str = ""
    admin_path: str = "/v1_admin"
    debug: bool = os.getenv("DEBUG", default="false").lower() == "true"

    _cors_origins_str: str | None = os.getenv("CORS_ORIGINS")
    _admin_users_str: str | None = os.getenv("ADMIN_USERS")

    page_max_limit: int = int(os.getenv("DEFAULT_PAGE_SIZE", default=150)) or 150
    max_aggregation_limit: int = (
        int(os.getenv("MAX_AGGREGATION_LIMIT", default=10000)) or 10000
    )

    mongo_uri_env: str | None = os.getenv("MONGO_URI")
    mongodb_host: str = os.getenv("MONGODB_HOST", "localhost")
    mongodb_port: int = int(os.getenv("MONGODB_PORT", default=27017))
    mongodb_user: str = os.getenv("MONGODB_USER", "")
    mongodb_password: str = os.getenv("MONGODB_PASSWORD", "")
    mongodb_database: str = os.getenv("MONGODB_DB", "caportalbe_db")
    mongodb_replica_set: str | None = os.getenv("MONGODB_REPLICA_SET") or None

    config_path: str | None = os.getenv("CONFIG_PATH") or None

    @property
    def cors_origins(self) -> list[str]:
        """Get the CORS origins."""

        return _split_list(self._cors_origins_str) or ["http://localhost:8080"]

    @property
    def admin_users(self) -> list[str]:
        """Tenants allowed to use the admin surface."""

        return _split_list(self._admin_users_str)

    @property
    def mongo_uri(self) -> str:
        """Build the MongoDB URI unless one is given explicitly."""

        if self.mongo_uri_env:
            return self.mongo_uri_env
        credentials = ""
        if self.mongodb_user:
            credentials = f"{self.mongodb_user}:{self.mongodb_password}@"
        return f"mongodb://{credentials}{self.mongodb_host}:{self.mongodb_port}/"

    def load_default_configs(self) -> dict[str, object]:
        """
        Read the optional JSON configuration file.

        Returns:
            The ``defaultConfigs`` object, empty when no file is configured

        """
        if not self.config_path:
            return {}
        with Path(self.config_path).open(encoding="utf-8") as config_file:
            return json.load(config_file).get("defaultConfigs") or {}

    @classmethod
    def get_log_config(cls, console_level: str = "INFO", **kwargs: object) -> dict:
        """
        Get the log configuration.

        Args:
            console_level: The level of the console log.
            **kwargs: Additional keyword arguments.

        """
        log_config = {
            "formatters": {
                "standard": {
                    "format": (
                        "[{levelname} {name} : {filename}:{lineno} : {asctime} "
                        "-> {funcName:10}] {message}"
                    ),
                    "style": "{",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": console_level,
                    "formatter": "standard",
                },
                "file": {
                    "class": "logging.FileHandler",
                    "level": "INFO",
                    "formatter": "standard",
                    "filename": str(cls.base_dir / "logs" / "app.log"),
                },
            },
            "loggers": {
                "": {
                    "handlers": [
                        "console",
                        "file",
                    ],
                    "level": console_level,
                    "propagate": True,
                },
                "pymongo": {"level": "WARNING"},
            },
            "version": 1,
        }
        return log_config

    @classmethod
    def config_logger(cls) -> None:
        """Configure the logger."""

        log_config = cls.get_log_config()

        if log_config["handlers"].get("file"):
            (getattr(cls, "base_dir", Path(".")) / "logs").mkdir(
                parents=True, exist_ok=True
            )

        logging.config.dictConfig(log_config)
