"""Per-guild Discord audio playback bot."""

__version__ = "0.1.0"
