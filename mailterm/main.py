import argparse
import asyncio
import configparser
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from mailterm.client import EmailClient, render_message
from mailterm.config import (
    ConfigurationError,
    default_config_path,
    load_config,
    mailterm_home,
    selected_service,
)
from mailterm.providers import EmlFileSource, MailSession, ProviderError, ProviderType
from mailterm.rendering import MessageDecodeError
from mailterm.ui.cli import run_setup_wizard, start_cli

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class MailTermApplication:
    """Main application class wiring configuration, logging and the email client."""

    def __init__(self, config_path: Optional[str] = None, service: Optional[str] = None):
        """Initialize the application with configuration."""
        self.config_path = Path(config_path) if config_path else default_config_path()
        self.config = self._load_config(self.config_path)
        self.setup_logging()

        active = ProviderType(service) if service else selected_service(self.config)
        self.client = EmailClient(self.config)
        if active is not None:
            self.select_service(active)

        logger.info("MailTerm application initialized")

    def _load_config(self, config_path: Path) -> configparser.ConfigParser:
        """Load configuration from the specified file."""
        return load_config(str(config_path))

    def reload_config(self):
        """Re-read the configuration after the setup wizard wrote it."""
        self.config = self._load_config(self.config_path)
        self.client = EmailClient(self.config)
        active = selected_service(self.config)
        if active is not None:
            self.select_service(active)

    def setup_logging(self):
        """Send logs to the configured file, leaving the terminal to the UI."""
        log_level = self.config.get("general", "log_level", fallback="INFO")
        numeric_level = getattr(logging, log_level.upper(), logging.INFO)
        log_file = self.config.get("general", "log_file", fallback="")
        log_file = str(Path(log_file).expanduser()) if log_file else None
        logging.basicConfig(
            level=numeric_level,
            format=LOG_FORMAT,
            filename=log_file
        )
        logging.getLogger().setLevel(numeric_level)

    def select_service(self, service: ProviderType) -> bool:
        """
        Activate a service if it is configured.

        Returns:
            True if the service is now active
        """
        try:
            self.client.switch_to(service)
            return True
        except ConfigurationError as e:
            logger.warning(f"Cannot use {service.label}: {e}")
            return False

    @property
    def active_service(self) -> Optional[ProviderType]:
        return self.client.active_service


def render_file(path: str) -> str:
    """Decode an .eml file for display."""
    rendered = asyncio.run(render_message(EmlFileSource(), MailSession(), path))
    return rendered.text


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="MailTerm terminal email client")
    parser.add_argument("--config", type=str, default=None,
                        help="Path to configuration file (default: $MAILTERM_HOME/config.ini)")
    parser.add_argument("--service", type=str, choices=[p.value for p in ProviderType], default=None,
                        help="Email service to use for this run")
    parser.add_argument("--render", type=str, metavar="FILE",
                        help="Decode an .eml file, print it and exit")
    parser.add_argument("--setup", action="store_true",
                        help="Run the setup wizard")
    return parser.parse_args(argv)


def load_environment():
    """Load .env from the mailterm home directory, then the working directory."""
    for env_path in (mailterm_home() / '.env', Path.cwd() / '.env'):
        if env_path.exists():
            load_dotenv(env_path, override=True)


def main(argv=None):
    """Main entry point for the application."""
    load_environment()
    args = parse_arguments(argv)

    if args.render:
        try:
            print(render_file(args.render))
        except (ProviderError, MessageDecodeError) as e:
            print(f"Error displaying message: {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        app = MailTermApplication(config_path=args.config, service=args.service)
        if args.setup or app.active_service is None:
            if not run_setup_wizard(app):
                return
        start_cli(app)
    except Exception as e:
        logger.error(f"Error in main: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
