"""scjingle: MusicXML to Steam Controller jingle converter."""

__version__ = "0.1.0"
