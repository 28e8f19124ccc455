"""Low-level building blocks for Amiga disk images: devices, bitmaps, directory caches and paths."""

__version__ = "0.1.0"