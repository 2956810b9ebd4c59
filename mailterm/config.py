"""
Configuration handling for mailterm.

Settings live in an INI file (config.ini) inside the mailterm home directory,
which defaults to ~/.mailterm and can be moved with MAILTERM_HOME.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .providers.base import ProviderType

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.ini"

# Keys that must be non-empty before a service can be used
REQUIRED_KEYS = {
    ProviderType.GMAIL: ("credentials_file",),
    ProviderType.GRAPH: ("tenant_id", "client_id", "client_secret"),
    ProviderType.IMAP: ("server", "username", "password"),
}


class ConfigurationError(Exception):
    """Raised when a service is used without the configuration it needs"""
    pass


def mailterm_home() -> Path:
    """Return the mailterm home directory, creating it if needed."""
    home = Path(os.environ.get("MAILTERM_HOME") or Path.home() / ".mailterm").expanduser()
    home.mkdir(parents=True, exist_ok=True)
    return home


def default_config_path() -> Path:
    return mailterm_home() / CONFIG_FILENAME


def _defaults(home: Path) -> Dict[str, Dict[str, str]]:
    return {
        "general": {
            "selected_service": "",
            "page_size": "20",
            "log_level": "INFO",
            "log_file": str(home / "mailterm.log"),
        },
        "gmail": {
            "credentials_file": str(home / "client_secret.json"),
            "token_file": str(home / "gmail_token.pickle"),
        },
        "graph": {
            "tenant_id": "",
            "client_id": "",
            "client_secret": "",
            "user_email": "",
        },
        "imap": {
            "server": "",
            "port": "993",
            "username": "",
            "password": "",
            "use_ssl": "true",
            "mailbox": "INBOX",
        },
    }


def load_config(config_path: Optional[str] = None) -> configparser.ConfigParser:
    """
    Load configuration, filling every section with defaults.

    A missing file is not an error: the defaults are returned and the setup
    wizard can write them out later.
    """
    path = Path(config_path) if config_path else default_config_path()
    # Passwords and secrets may contain '%'
    config = configparser.ConfigParser(interpolation=None)
    config.read_dict(_defaults(path.parent))
    if path.exists():
        config.read(path)
    else:
        logger.info(f"Configuration file {path} not found, using defaults")
    return config


def save_config(config: configparser.ConfigParser, config_path: Optional[str] = None) -> Path:
    """Write configuration to disk, readable by the owner only."""
    path = Path(config_path) if config_path else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        config.write(f)
    os.chmod(path, 0o600)
    logger.info(f"Saved configuration to {path}")
    return path


def selected_service(config: configparser.ConfigParser) -> Optional[ProviderType]:
    value = config.get("general", "selected_service", fallback="").strip().lower()
    try:
        return ProviderType(value) if value else None
    except ValueError:
        logger.warning(f"Unknown selected_service '{value}' in configuration")
        return None


def has_credentials(config: configparser.ConfigParser, service: ProviderType) -> bool:
    """Check whether the section for a service has everything it needs."""
    if not config.has_section(service.value):
        return False
    section = config[service.value]
    if not all(section.get(key, "").strip() for key in REQUIRED_KEYS[service]):
        return False
    if service == ProviderType.GMAIL:
        # Either a cached token or the client secrets to start the OAuth flow
        return Path(section["credentials_file"]).expanduser().exists() or \
            Path(section.get("token_file", "")).expanduser().is_file()
    return True


def provider_settings(config: configparser.ConfigParser, service: ProviderType) -> Dict[str, Any]:
    """
    Build the provider config dictionary for a service.

    Raises:
        ConfigurationError: If the service's credentials are missing
    """
    if not has_credentials(config, service):
        raise ConfigurationError(
            f"{service.label} is not configured. Run 'mailterm --setup' or edit config.ini."
        )

    settings: Dict[str, Any] = dict(config[service.value])
    if service == ProviderType.IMAP:
        settings["port"] = config.getint("imap", "port", fallback=993)
        settings["use_ssl"] = config.getboolean("imap", "use_ssl", fallback=True)
    elif service == ProviderType.GMAIL:
        settings["credentials_file"] = str(Path(settings["credentials_file"]).expanduser())
        settings["token_file"] = str(Path(settings["token_file"]).expanduser())
    return settings
