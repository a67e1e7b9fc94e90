"""Exceptions raised by the toneparse decoders."""


class ToneparseError(Exception):
    """Base class for all toneparse failures."""


class PlistParseError(ToneparseError, ValueError):
    """A binary property list is structurally unusable."""


class CatalogError(ToneparseError):
    """The plugin parameter catalog could not be loaded."""


class UnsupportedFormatError(ToneparseError):
    """No decoder handles the given file type."""
