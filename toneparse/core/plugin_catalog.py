"""Parameter-name catalog for Logic Pro plugins.

Built from ``plugin_settings/<PluginName>/CSParameterOrder.plist.xml`` files:
each lists the control-surface parameter order as ``"<index> <name>"``
strings. The catalog is read once and never modified afterwards.
"""

from __future__ import annotations

import logging
import plistlib
import re
import threading
from pathlib import Path
from xml.parsers.expat import ExpatError

from toneparse.core.constants import (
    CATALOG_BYPASS_TOKEN,
    CATALOG_FILE_NAME,
    CATALOG_ORDER_KEY,
)
from toneparse.core.errors import CatalogError
from toneparse.core.models import ParamDef
from toneparse.utils.config import plugin_settings_dir

logger = logging.getLogger(__name__)

_ENTRY_RE = re.compile(r"^(\d+)\s+(.+?)\s*$")


class PluginCatalog:
    """Read-only mapping of plugin name -> ordered parameter definitions."""

    def __init__(self, params: dict[str, list[ParamDef]], known_names: list[str] | None = None):
        self._params = {name: tuple(defs) for name, defs in params.items()}
        self._known = tuple(known_names if known_names is not None else sorted(params))

    @classmethod
    def load(cls, base_dir: Path) -> PluginCatalog:
        """Scan ``base_dir`` for plugin folders.

        Raises CatalogError when the directory itself is missing; unreadable
        plugin files only drop that plugin.
        """
        base_dir = Path(base_dir)
        if not base_dir.is_dir():
            raise CatalogError(
                f"Plugin settings dir required for Logic Pro parameter name discovery: {base_dir}"
            )

        params: dict[str, list[ParamDef]] = {}
        known: list[str] = []
        for plugin_dir in sorted(p for p in base_dir.iterdir() if p.is_dir()):
            known.append(plugin_dir.name)
            defs = _load_parameter_order(plugin_dir / CATALOG_FILE_NAME)
            if defs:
                params[plugin_dir.name] = defs

        logger.debug(
            "Loaded catalog from %s: %d plugins, %d with parameter order",
            base_dir, len(known), len(params),
        )
        return cls(params, known)

    def known_plugin_names(self) -> list[str]:
        return list(self._known)

    def params_for(self, name: str) -> list[ParamDef]:
        return list(self._params.get(name, ()))

    def __contains__(self, name: str) -> bool:
        return name in self._params

    def __len__(self) -> int:
        return len(self._known)

    def find_plugin(self, text: str) -> str | None:
        """First known plugin whose name occurs in ``text`` (case-insensitive)."""
        lower = text.lower()
        if not lower:
            return None
        for name in self._known:
            if name.lower() in lower:
                return name
        return None

    def match_param_key(self, unit_name: str) -> str | None:
        """Catalog entry matching ``unit_name`` as substring in either direction."""
        lower = unit_name.lower()
        if not lower:
            return None
        for name in self._params:
            key = name.lower()
            if key in lower or lower in key:
                return name
        return None


def _load_parameter_order(xml_path: Path) -> list[ParamDef]:
    if not xml_path.is_file():
        return []
    try:
        with open(xml_path, "rb") as f:
            document = plistlib.load(f)
    except (OSError, ValueError, ExpatError) as e:
        logger.warning("Skipping unreadable plugin settings %s: %s", xml_path, e)
        return []

    entries = document.get(CATALOG_ORDER_KEY) if isinstance(document, dict) else None
    if not isinstance(entries, list):
        return []
    return parse_parameter_order(entries)


def parse_parameter_order(entries: list) -> list[ParamDef]:
    """Turn ``"<index> <name>"`` strings into ParamDefs sorted by index."""
    defs: list[ParamDef] = []
    for raw in entries:
        if not isinstance(raw, str):
            continue
        entry = raw.strip()
        m = _ENTRY_RE.match(entry)
        if m:
            defs.append(ParamDef(index=int(m.group(1)), name=m.group(2).strip()))
        elif entry and CATALOG_BYPASS_TOKEN not in entry:
            defs.append(ParamDef(index=len(defs), name=entry))
    defs.sort(key=lambda d: d.index)
    return defs


# ── Process-wide default catalog ─────────────────────────────────────────

_default_catalog: PluginCatalog | None = None
_default_lock = threading.Lock()


def get_default_catalog() -> PluginCatalog:
    """Load the bundled catalog once per process; read-only afterwards."""
    global _default_catalog
    if _default_catalog is None:
        with _default_lock:
            if _default_catalog is None:
                _default_catalog = PluginCatalog.load(plugin_settings_dir())
    return _default_catalog
