"""Tests for the command line entry point and file dispatch."""

import json
import logging
import plistlib
import struct
import tempfile
from pathlib import Path

import pytest

from toneparse.cli_export import main
from toneparse.core.dispatch import make_parser, parse_plist_file, parse_preset
from toneparse.core.errors import PlistParseError, UnsupportedFormatError
from toneparse.core.logic_pro_parser import LogicProParser
from toneparse.core.neural_dsp_parser import NeuralDSPParser
from toneparse.utils.config import PATCH_ROOT_FILE

NEURAL_DSP_BYTES = (
    b"asato-X\x00\x02\x01"
    b"subModels\x00\x01\x05\x04ampParameters\x00\x02\x01"
    b"gain\x00\x01\x05\x045.5\x00\x02\x01"
    b"cabPath\x00\x01\x02\x05\x02\x01"
)


def _channel_strip() -> bytes:
    """One Noise Gate chunk with a packed parameter block."""
    header = b"OCuA" + b"\x00" * 0x20 + bytes([45]) + struct.pack("<HHI", 1, 1, 1)
    words = b"\x00\x00\x00\xb3\x00\x00\x00\x24\x00\x00\x00\x58" + b"\x00" * 40
    return header + b"\x00Noise Gate\x00\x01GAME\x00" + words


def _make_preset(content: bytes, suffix: str) -> Path:
    """Create a temporary preset file with given binary content."""
    tmp = tempfile.NamedTemporaryFile(suffix=suffix, delete=False)
    tmp.write(content)
    tmp.close()
    return Path(tmp.name)


def test_markdown_output(capsys):
    """Markdown is the default output format."""
    path = _make_preset(NEURAL_DSP_BYTES, ".xml")
    assert main([str(path)]) == 0
    out = capsys.readouterr().out
    assert "Preset Name: asato-X" in out
    assert "| gain    | 5.5  |" in out
    assert "| cabPath | null |" in out
    path.unlink()


def test_json_output(capsys):
    """-f json prints the decoded preset as JSON."""
    path = _make_preset(NEURAL_DSP_BYTES, ".xml")
    assert main([str(path), "-f", "json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["name"] == "asato-X"
    assert data["modules"][0]["settings"] == {"gain": "5.5", "cabPath": None}
    path.unlink()


def test_json_equals_spelling(capsys):
    """The format may also be given as -f=json."""
    path = _make_preset(NEURAL_DSP_BYTES, ".xml")
    assert main([str(path), "-f=json"]) == 0
    assert json.loads(capsys.readouterr().out)["name"] == "asato-X"
    path.unlink()


def test_channel_strip_json(capsys):
    """Channel strips decode with the bundled catalog."""
    path = _make_preset(_channel_strip(), ".cst")
    assert main([str(path), "-f", "json", "--metadata"]) == 0
    data = json.loads(capsys.readouterr().out)
    unit = data["audio_units"][0]
    assert unit["name"] == "Noise Gate"
    assert unit["parameters"]["Threshold"] == -65.0
    assert unit["parameters"]["Attack"] == 18.0
    assert unit["block"]["primary_bytes"][:3] == [0xB3, 0x24, 0x58]
    path.unlink()


def test_patch_bundle(tmp_path, capsys):
    """A .patch directory is read through its root channel strip."""
    bundle = tmp_path / "Lead.patch"
    bundle.mkdir()
    (bundle / PATCH_ROOT_FILE).write_bytes(_channel_strip())
    assert main([str(bundle), "-f", "json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert [u["name"] for u in data["audio_units"]] == ["Noise Gate"]


def test_plist_output(capsys):
    """Binary plists are printed as JSON whatever the format flag says."""
    path = _make_preset(plistlib.dumps({"Channel_name": "Lead", "ids": [1, 2]}, fmt=plistlib.FMT_BINARY), ".plist")
    assert main([str(path)]) == 0
    assert json.loads(capsys.readouterr().out) == {"Channel_name": "Lead", "ids": [1, 2]}
    path.unlink()


def test_coverage_report(capsys):
    """--coverage reports on stderr, leaving stdout parseable."""
    path = _make_preset(NEURAL_DSP_BYTES, ".xml")
    assert main([str(path), "-f", "json", "--coverage"]) == 0
    captured = capsys.readouterr()
    json.loads(captured.out)
    assert "Coverage:" in captured.err
    path.unlink()


def test_plot_option(tmp_path, capsys):
    """--plot writes a PNG for channel strips with parameter blocks."""
    path = _make_preset(_channel_strip(), ".cst")
    png = tmp_path / "blocks.png"
    assert main([str(path), "--plot", str(png)]) == 0
    assert png.stat().st_size > 0
    path.unlink()


def test_unsupported_extension(capsys):
    """Unknown extensions fail with exit code 1."""
    path = _make_preset(b"\x00" * 10, ".wav")
    assert main([str(path)]) == 1
    assert "Unsupported file extension" in capsys.readouterr().err
    path.unlink()


def test_error_as_json(capsys):
    """Errors are printed as JSON when JSON output was requested."""
    path = _make_preset(b"not a plist at all", ".plist")
    assert main([str(path), "-f", "json"]) == 1
    assert "error" in json.loads(capsys.readouterr().out)
    path.unlink()


def test_missing_file(tmp_path, capsys):
    """A missing file is reported, not raised."""
    assert main([str(tmp_path / "nope.xml")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_make_parser_by_extension():
    """Decoders are chosen by extension, case-insensitively."""
    assert isinstance(make_parser(Path("a.XML"), b""), NeuralDSPParser)
    assert isinstance(make_parser(Path("a.cst"), b""), LogicProParser)
    assert isinstance(make_parser(Path("a.patch"), b""), LogicProParser)
    with pytest.raises(UnsupportedFormatError):
        make_parser(Path("a.txt"), b"")


def test_parse_preset_and_plist_file():
    """The convenience readers decode straight from disk."""
    path = _make_preset(NEURAL_DSP_BYTES, ".xml")
    assert parse_preset(path).name == "asato-X"
    path.unlink()

    bad = _make_preset(b"<?xml?>", ".plist")
    with pytest.raises(PlistParseError):
        parse_plist_file(bad)
    bad.unlink()


def test_parse_preset_logs_byte_count(caplog):
    """The byte count read from disk is logged at debug level."""
    caplog.set_level(logging.DEBUG, logger="toneparse.core.dispatch")
    path = _make_preset(NEURAL_DSP_BYTES, ".xml")
    parse_preset(path)
    path.unlink()
    assert f"({len(NEURAL_DSP_BYTES)} bytes)" in caplog.text
