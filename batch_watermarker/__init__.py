"""Batch image watermarker: convert, resize and watermark a directory tree."""

__version__ = "1.0.0"
