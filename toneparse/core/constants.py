"""Known binary markers and heuristic constants for preset decoding."""

# Printable ASCII range used by every token/label scan
PRINTABLE_MIN = 0x20
PRINTABLE_MAX = 0x7E

# ── Neural DSP token stream ─────────────────────────────────────────────

# 3-byte markers read (big-endian) right after a key's NUL terminator
NULL_VALUE_MARKERS = frozenset({
    0x010205,  # POSIX encode
    0x010906,  # DOS encode
})
EDITOR_VALUE_MARKER = 0x010501
LIST_END_MARKER = 0x000101
LEGACY_STRING_VALUE_MARKER = 0x010605

LIST_ELEMENTS_TOKEN = "listElements"
SUBMODELS_KEY = "subModels"
LEGACY_PARAM_TOKEN = "PARAM"
LEGACY_MODULE_NAME = "LEGACY FORMAT: Settings"

# ── Binary property lists ───────────────────────────────────────────────

BPLIST_MAGIC = b"bplist"
BPLIST_TRAILER_SIZE = 32
# Seconds between the Unix epoch and 2001-01-01T00:00:00Z
APPLE_EPOCH_OFFSET = 978307200

# ── Logic Pro channel strip (.cst) ──────────────────────────────────────

CHUNK_MAGICS = (b"OCuA", b"UCuA")
EXTENDED_HEADER_OFFSET = 0x24

PARAM_BLOCK_MARKERS = frozenset({"GAME", "GAMETSPP"})

# Keys probed, in order, for a plugin name inside an embedded bplist
PLIST_NAME_KEYS = ("name", "fullName", "displayName", "pluginName", "AudioUnitName")

# Short names some chunks carry instead of the catalog name
PLUGIN_ALIASES = {
    "Amp": "Amp Designer",
}

MAX_BLOCK_WORDS = 256
ALIGNMENT_WINDOW = 64
MIN_BLOCK_SCORE = 0.2
MAX_PLAUSIBLE_MAGNITUDE = 1000.0

# ── Catalog assets ──────────────────────────────────────────────────────

CATALOG_FILE_NAME = "CSParameterOrder.plist.xml"
CATALOG_ORDER_KEY = "ControlSurfaceParameterOrder"
CATALOG_BYPASS_TOKEN = "$BYPASS"

# Coarse audio unit categories, first pattern hit wins
UNIT_TYPE_PATTERNS = (
    ("pedalboard", r"pedalboard"),
    ("amp", r"\bamp\b"),
    ("dynamics", r"compressor|gate|limiter|expander|de-?esser|enveloper"),
    ("eq", r"\beq\b|filter"),
    ("delay", r"delay|echo"),
    ("reverb", r"verb|space"),
    ("modulation", r"chorus|flanger|phaser|tremolo|ensemble|modulat"),
    ("distortion", r"distortion|overdrive|fuzz|bitcrusher|clip"),
    ("utility", r"\bgain\b|direction mixer|multimeter|tuner"),
)
