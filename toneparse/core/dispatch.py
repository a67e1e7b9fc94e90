"""Pick a decoder from a preset file's extension."""

from __future__ import annotations

import logging
from pathlib import Path

from toneparse.core.bplist_parser import is_bplist, parse_bplist
from toneparse.core.errors import PlistParseError, UnsupportedFormatError
from toneparse.core.logic_pro_parser import LogicProParser
from toneparse.core.models import Preset
from toneparse.core.neural_dsp_parser import NeuralDSPParser
from toneparse.core.plugin_catalog import PluginCatalog
from toneparse.utils.file_utils import read_preset_bytes

logger = logging.getLogger(__name__)

NEURAL_DSP_EXTENSIONS = {".xml"}
LOGIC_PRO_EXTENSIONS = {".cst", ".patch"}
PLIST_EXTENSIONS = {".plist"}


def make_parser(path: Path, data: bytes, catalog: PluginCatalog | None = None):
    """Return the decoder instance for ``path``'s extension."""
    ext = path.suffix.lower()
    if ext in NEURAL_DSP_EXTENSIONS:
        return NeuralDSPParser(data)
    if ext in LOGIC_PRO_EXTENSIONS:
        return LogicProParser(data, catalog)
    raise UnsupportedFormatError(f"Unsupported file extension: {ext or path.name}")


def parse_preset(path: Path, catalog: PluginCatalog | None = None) -> Preset:
    """Convenience function to read and decode a preset file."""
    path = Path(path)
    data = read_preset_bytes(path)
    logger.debug("Read %s (%d bytes)", path, len(data))
    return make_parser(path, data, catalog).parse()


def parse_plist_file(path: Path):
    """Decode a standalone binary .plist file and return its root object."""
    path = Path(path)
    if path.suffix.lower() not in PLIST_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported file extension: {path.suffix}")
    data = read_preset_bytes(path)
    if not is_bplist(data):
        raise PlistParseError(f"Invalid binary plist file: {path}")
    return parse_bplist(data)
