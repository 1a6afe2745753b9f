"""
Configuration management for booq.

Handles loading and saving user configuration from:
- XDG config directory: ~/.config/booq/config.json
- Fallback: ~/.booq/config.json

API keys may also come from the environment (GEMINI_API_KEY or API_KEY for
the LLM provider, GOOGLE_BOOKS_API_KEY for Google Books); the environment
wins over the file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, field

logger = logging.getLogger(__name__)

LLM_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")
GOOGLE_BOOKS_KEY_ENV_VAR = "GOOGLE_BOOKS_API_KEY"

# Providers that run without a credential
KEYLESS_PROVIDERS = {"ollama"}


@dataclass
class LLMConfig:
    """LLM provider configuration."""
    provider: str = "gemini"
    model: str = "gemini-2.5-flash"
    host: str = "localhost"
    port: int = 11434
    api_key: Optional[str] = None
    temperature: float = 0.7
    max_tokens: Optional[int] = None

    def resolved_api_key(self) -> Optional[str]:
        """API key from the environment, falling back to the config file."""
        for var in LLM_KEY_ENV_VARS:
            if os.environ.get(var):
                return os.environ[var]
        return self.api_key

    @property
    def is_configured(self) -> bool:
        """True when the provider has what it needs to be called."""
        return self.provider in KEYLESS_PROVIDERS or bool(self.resolved_api_key())


@dataclass
class MetadataConfig:
    """Google Books search settings."""
    google_books_api_key: Optional[str] = None
    max_results: int = 10

    def resolved_api_key(self) -> Optional[str]:
        return os.environ.get(GOOGLE_BOOKS_KEY_ENV_VAR) or self.google_books_api_key


@dataclass
class ServerConfig:
    """Web server configuration."""
    host: str = "127.0.0.1"
    port: int = 8000
    auto_open_browser: bool = False


@dataclass
class CLIConfig:
    """CLI default options."""
    verbose: bool = False
    page_size: int = 50


@dataclass
class LibraryConfig:
    """Library-related settings."""
    default_path: Optional[str] = None


@dataclass
class BooqConfig:
    """Main booq configuration."""
    llm: LLMConfig = field(default_factory=LLMConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)
    library: LibraryConfig = field(default_factory=LibraryConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "llm": asdict(self.llm),
            "metadata": asdict(self.metadata),
            "server": asdict(self.server),
            "cli": asdict(self.cli),
            "library": asdict(self.library),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BooqConfig':
        """Create from dictionary."""
        return cls(
            llm=LLMConfig(**data.get("llm", {})),
            metadata=MetadataConfig(**data.get("metadata", {})),
            server=ServerConfig(**data.get("server", {})),
            cli=CLIConfig(**data.get("cli", {})),
            library=LibraryConfig(**data.get("library", {})),
        )


@dataclass(frozen=True)
class Capabilities:
    """
    Which optional features can run with the current configuration.

    Built once from the configuration and handed to the components and
    surfaces that need to know.
    """
    metadata_search: bool = True
    ai_search: bool = False
    chat: bool = False

    @classmethod
    def from_config(cls, config: BooqConfig) -> 'Capabilities':
        ai_ready = config.llm.is_configured
        return cls(metadata_search=True, ai_search=ai_ready, chat=ai_ready)

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


def get_config_path() -> Path:
    """
    Get configuration file path.

    Follows XDG Base Directory specification:
    1. ~/.config/booq/config.json
    2. Fallback: ~/.booq/config.json

    Returns:
        Path to config file
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        config_dir = xdg_config_home / "booq"
    else:
        config_dir = Path.home() / ".booq"

    return config_dir / "config.json"


def load_config() -> BooqConfig:
    """
    Load configuration from file.

    Returns:
        BooqConfig instance with loaded values or defaults
    """
    config_path = get_config_path()

    if not config_path.exists():
        return BooqConfig()

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
        return BooqConfig.from_dict(data)
    except (json.JSONDecodeError, OSError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")
        return BooqConfig()


def save_config(config: BooqConfig) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    logger.info(f"Configuration saved to {config_path}")


def ensure_config_exists() -> Path:
    """
    Ensure configuration file exists, creating with defaults if not.

    Returns:
        Path to config file
    """
    config_path = get_config_path()

    if not config_path.exists():
        save_config(BooqConfig())

    return config_path


def update_config(
    # LLM settings
    llm_provider: Optional[str] = None,
    llm_model: Optional[str] = None,
    llm_host: Optional[str] = None,
    llm_port: Optional[int] = None,
    llm_api_key: Optional[str] = None,
    llm_temperature: Optional[float] = None,
    # Metadata search settings
    google_books_api_key: Optional[str] = None,
    metadata_max_results: Optional[int] = None,
    # Server settings
    server_host: Optional[str] = None,
    server_port: Optional[int] = None,
    server_auto_open: Optional[bool] = None,
    # CLI settings
    cli_verbose: Optional[bool] = None,
    cli_page_size: Optional[int] = None,
    # Library settings
    library_default_path: Optional[str] = None,
) -> BooqConfig:
    """
    Update configuration.

    Only updates provided values, leaving others unchanged.

    Returns:
        The saved configuration
    """
    config = load_config()

    if llm_provider is not None:
        config.llm.provider = llm_provider
    if llm_model is not None:
        config.llm.model = llm_model
    if llm_host is not None:
        config.llm.host = llm_host
    if llm_port is not None:
        config.llm.port = llm_port
    if llm_api_key is not None:
        config.llm.api_key = llm_api_key
    if llm_temperature is not None:
        config.llm.temperature = llm_temperature

    if google_books_api_key is not None:
        config.metadata.google_books_api_key = google_books_api_key
    if metadata_max_results is not None:
        config.metadata.max_results = metadata_max_results

    if server_host is not None:
        config.server.host = server_host
    if server_port is not None:
        config.server.port = server_port
    if server_auto_open is not None:
        config.server.auto_open_browser = server_auto_open

    if cli_verbose is not None:
        config.cli.verbose = cli_verbose
    if cli_page_size is not None:
        config.cli.page_size = cli_page_size

    if library_default_path is not None:
        config.library.default_path = library_default_path

    save_config(config)
    return config
