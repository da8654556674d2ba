"""Preview, analyse, and proxy public HLS streams."""

__version__ = "0.1.0"
