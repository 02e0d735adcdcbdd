"""Configuration — runtime settings and the environment inventory."""

from envctl.core.config.loader import (
    INVENTORY_FILE,
    default_inventory,
    find_inventory_file,
    load_inventory,
    read_inventory_file,
)
from envctl.core.config.settings import Settings, load_settings

__all__ = [
    "INVENTORY_FILE",
    "Settings",
    "default_inventory",
    "find_inventory_file",
    "load_inventory",
    "load_settings",
    "read_inventory_file",
]
