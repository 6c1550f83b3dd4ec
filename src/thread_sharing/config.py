"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from thread_sharing.models import Identity


@dataclass
class ApiConfig:
    base_url: str = "https://id.getmailspring.com"
    share_url_base: str = "https://shared.getmailspring.com"
    api_key: str = ""
    timeout_seconds: float = 30.0


@dataclass
class StoreConfig:
    db_path: Path = field(default_factory=lambda: Path.home() / "thread-sharing" / "mail.db")
    attachments_path: Path = field(default_factory=lambda: Path.home() / "thread-sharing" / "files")


@dataclass
class SharingConfig:
    debounce_seconds: float = 5.0
    date_epsilon_seconds: int = 60
    poll_interval_seconds: float = 1.0


@dataclass
class Config:
    identity: Identity = field(default_factory=Identity)
    api: ApiConfig = field(default_factory=ApiConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    sharing: SharingConfig = field(default_factory=SharingConfig)


def expand_env_var(value: str) -> str:
    """Expand environment variables in string (e.g. ${VAR})."""
    if value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.environ.get(env_var, "")
    return value


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        search_paths = [
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "thread-sharing" / "config.yaml",
            Path("/etc/thread-sharing/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    identity_data = data.get("identity", {})
    identity = Identity(
        id=expand_env_var(str(identity_data.get("id", ""))),
        first_name=identity_data.get("first_name", ""),
        last_name=identity_data.get("last_name", ""),
        email_address=identity_data.get("email", ""),
    )

    # API keys are usually given as ${VAR} so they stay out of the file
    api_data = data.get("api", {})
    api = ApiConfig(
        base_url=api_data.get("base_url", "https://id.getmailspring.com").rstrip("/"),
        share_url_base=api_data.get("share_url_base", "https://shared.getmailspring.com").rstrip("/"),
        api_key=expand_env_var(api_data.get("api_key", "")),
        timeout_seconds=float(api_data.get("timeout_seconds", 30.0)),
    )

    store_data = data.get("store", {})
    store = StoreConfig(
        db_path=expand_path(store_data.get("db_path", "~/thread-sharing/mail.db")),
        attachments_path=expand_path(store_data.get("attachments_path", "~/thread-sharing/files")),
    )

    sharing_data = data.get("sharing", {})
    sharing = SharingConfig(
        debounce_seconds=float(sharing_data.get("debounce_seconds", 5.0)),
        date_epsilon_seconds=int(sharing_data.get("date_epsilon_seconds", 60)),
        poll_interval_seconds=float(sharing_data.get("poll_interval_seconds", 1.0)),
    )

    return Config(
        identity=identity,
        api=api,
        store=store,
        sharing=sharing,
    )
