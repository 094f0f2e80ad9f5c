import configparser
from pathlib import Path

DEFAULT_CONFIG_PATH = Path.home() / ".anime-games-launcher"
DEFAULT_CONFIG_FILE_PATH = DEFAULT_CONFIG_PATH / "launcher.ini"


def _defaults() -> dict[str, dict[str, str]]:
    return {
        "tasks": {"poll_interval": "0.5"},
        "components": {"folder": str(DEFAULT_CONFIG_PATH / "components")},
        "prefix": {
            "path": str(DEFAULT_CONFIG_PATH / "prefix"),
            "install_corefonts": "true",
        },
    }


def get_configuration() -> configparser.ConfigParser:
    """
    Get launcher configuration.

    Missing sections and keys are filled with defaults and written back:
        * `['tasks']['poll_interval']` -> float, seconds between task polls
        * `['components']['folder']` -> path where wine/dxvk builds live
        * `['prefix']['path']` -> path of the wine prefix
        * `['prefix']['install_corefonts']` -> bool
    """
    DEFAULT_CONFIG_PATH.mkdir(parents=True, exist_ok=True)
    config = configparser.ConfigParser()
    config.read_dict(_defaults())

    if DEFAULT_CONFIG_FILE_PATH.exists():
        config.read(DEFAULT_CONFIG_FILE_PATH)
    else:
        with open(DEFAULT_CONFIG_FILE_PATH, "w") as configfile:
            config.write(configfile)

    return config


def poll_interval(config: configparser.ConfigParser) -> float:
    """Seconds the tasks queue driver sleeps between two polls."""
    value = config.getfloat("tasks", "poll_interval")
    if value <= 0:
        raise ValueError(f"poll_interval must be positive, got {value}")
    return value


def components_folder(config: configparser.ConfigParser) -> Path:
    return Path(config.get("components", "folder")).expanduser()


def prefix_path(config: configparser.ConfigParser) -> Path:
    return Path(config.get("prefix", "path")).expanduser()


def install_corefonts(config: configparser.ConfigParser) -> bool:
    return config.getboolean("prefix", "install_corefonts")
