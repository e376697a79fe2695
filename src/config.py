import os
from typing import Optional

from aws_lambda_powertools import Logger
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

import entities
from errors import ConfigurationError

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# Every logger handed out by get_logger, so the CLI can change levels after import
_loggers: list[Logger] = []


def get_logger(service: Optional[str] = None, level: Optional[str] = None) -> Logger:
    kwargs = {
        "json_default": entities.json_default,
        "level": level or os.environ.get("LOG_LEVEL", "INFO"),
    }
    if service:
        kwargs["service"] = service
    logger = Logger(**kwargs)
    _loggers.append(logger)
    return logger


def set_log_level(level: str) -> None:
    """Apply a log level to every logger created through get_logger."""
    level = level.upper()
    if level not in _LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level '{level}', expected one of {sorted(_LOG_LEVELS)}")
    for logger in _loggers:
        logger.setLevel(level)


logger = get_logger(service="config")


class Config(BaseSettings):
    model_config = SettingsConfigDict(frozen=True, env_file=".env", extra="ignore")

    ldap_host: str = "ldap.internal.sanger.ac.uk"
    ldap_bind_dn: Optional[str] = None
    ldap_bind_password: Optional[str] = None
    ldap_group_base: str = "ou=group,dc=sanger,dc=ac,dc=uk"
    ldap_group_filter: str = "(cn=*)"
    ldap_people_base: str = "ou=people,dc=sanger,dc=ac,dc=uk"
    ldap_people_filter: str = "(sangerActiveAccount=TRUE)"
    ldap_page_size: int = 500

    registry_database_url: str

    group_prefix: str = "ss_"
    contamination_group_suffix: str = "_human"
    public_group_name: str = "public"
    managed_release_strategy: str = "managed"

    igroupadmin_command: str = "igroupadmin"
    ienv_command: str = "ienv"

    audit_dropped_identities: bool = False
    log_level: str = "ERROR"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return v

    @field_validator("ldap_page_size")
    @classmethod
    def positive_page_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("ldap_page_size must be a positive integer")
        return v

    def primary_group_name(self, study_id: str) -> str:
        return f"{self.group_prefix}{study_id}"

    def contamination_group_name(self, study_id: str) -> str:
        return f"{self.group_prefix}{study_id}{self.contamination_group_suffix}"


_config: Optional[Config] = None


def get_config() -> Config:
    global _config  # noqa: PLW0603
    if _config is None:
        try:
            _config = Config()  # type: ignore # noqa: PGH003
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e
    return _config
