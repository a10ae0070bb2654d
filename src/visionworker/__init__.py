"""OCR / template locate worker driven by JSON lines on stdin."""

__version__ = "1.0.0"
