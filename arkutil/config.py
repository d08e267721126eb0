import copy
import os

import toml
import yaml

from arkutil.log import LogConfig
from arkutil.timer import Timer

DEFAULT_CONFIG_PATH = "./config.toml"
ENV_CONFIG_DIR_VAR = "ARKUTIL_CONFIG_DIR"

DEFAULT_CONFIG = {
    "logging": {
        "level": "INFO",
        "log_dir": "logs",
        "quiet": False,
        "verbose": False,
        "timed": True,
    },
    "timer": {"round": 2},
}


def _merge(base, override):
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(cli_config_path=None):
    """
    Load configuration from a TOML file, merged over DEFAULT_CONFIG.

    Precedence:
      1. cli_config_path if provided.
      2. Environment variable ARKUTIL_CONFIG_DIR (looking for config.toml).
      3. Default to ./config.toml, falling back to the defaults if it is absent.

    Returns:
        dict: The configuration settings.
    """
    explicit = True
    if cli_config_path:
        config_path = cli_config_path
    elif os.environ.get(ENV_CONFIG_DIR_VAR):
        config_path = os.path.join(os.environ[ENV_CONFIG_DIR_VAR], "config.toml")
    else:
        config_path = DEFAULT_CONFIG_PATH
        explicit = False

    if not os.path.exists(config_path):
        if explicit:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, "r") as f:
        config_data = toml.load(f)

    return _merge(DEFAULT_CONFIG, config_data)


def log_config(cfg):
    """Build a LogConfig from the [logging] section."""
    section = cfg.get("logging", {})
    return LogConfig(
        quiet=bool(section.get("quiet", False)),
        verbose=bool(section.get("verbose", False)),
        timed=bool(section.get("timed", True)),
    )


def make_timer(cfg):
    """Build a Timer from the [timer] section."""
    return Timer(round_places=int(cfg.get("timer", {}).get("round", 2)))


def load_hooks_config(hooks_path):
    """
    Load hook definitions from a YAML file.

    Expected layout:

        hooks:
          - when: created file
            command: echo {path}

    Args:
        hooks_path (str): Path to the YAML configuration file.

    Returns:
        dict: Hooks configuration with key 'hooks'.
    """
    if not os.path.exists(hooks_path):
        raise FileNotFoundError(f"Hooks configuration file not found: {hooks_path}")
    with open(hooks_path, "r") as f:
        hooks_config = yaml.safe_load(f) or {}
    if not isinstance(hooks_config, dict):
        raise ValueError(f"Hooks configuration must be a mapping: {hooks_path}")
    if hooks_config.get("hooks") is None:
        hooks_config["hooks"] = []
    return hooks_config


def load_hooks_configs(path):
    """
    Load hook definitions from a YAML file or a directory containing YAML files.
    If a directory is provided, all .yaml/.yml files are loaded and aggregated
    in file name order.

    Args:
        path (str): Path to a YAML file or directory.

    Returns:
        dict: Aggregated hooks configuration with key 'hooks'.
    """
    if not os.path.isdir(path):
        return load_hooks_config(path)
    hooks = []
    for filename in sorted(os.listdir(path)):
        if filename.endswith((".yaml", ".yml")):
            hooks.extend(load_hooks_config(os.path.join(path, filename))["hooks"])
    return {"hooks": hooks}
