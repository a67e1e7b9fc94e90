"""Default paths and application settings."""

import os
from pathlib import Path

APP_NAME = "toneparse"
APP_VERSION = "1.0.0"

PACKAGE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_PLUGIN_SETTINGS_DIR = PACKAGE_DIR / "assets" / "plugin_settings"
PLUGIN_SETTINGS_ENV = "TONEPARSE_PLUGIN_SETTINGS"

# Upper bounds applied to every binary plist before allocating
DEFAULT_MAX_OBJECT_SIZE = 100 * 1000 * 1000
DEFAULT_MAX_OBJECT_COUNT = 32768

# .patch bundles are directories holding the channel strip under this name
PATCH_ROOT_FILE = "#Root.cst"


def plugin_settings_dir() -> Path:
    """Catalog asset directory, honouring ``TONEPARSE_PLUGIN_SETTINGS``."""
    override = os.environ.get(PLUGIN_SETTINGS_ENV)
    if override:
        return Path(override)
    return DEFAULT_PLUGIN_SETTINGS_DIR
