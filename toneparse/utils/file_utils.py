"""File and path utility functions."""

from pathlib import Path

from toneparse.utils.config import PATCH_ROOT_FILE


def resolve_preset_file(path: Path) -> Path:
    """Return the file holding the preset bytes.

    ``.patch`` bundles are directories; their channel strip lives in
    ``#Root.cst``.
    """
    if path.is_dir() and path.suffix.lower() == ".patch":
        return path / PATCH_ROOT_FILE
    return path


def read_preset_bytes(path: Path) -> bytes:
    with open(resolve_preset_file(path), "rb") as f:
        return f.read()
