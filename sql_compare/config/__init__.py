"""Configuration module - settings, config file and secrets."""

from .settings import Settings, ConfigurationError, SecretRedactionFilter

__all__ = ["Settings", "ConfigurationError", "SecretRedactionFilter"]
