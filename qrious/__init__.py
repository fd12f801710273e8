"""QRious - redirect resolution and trust scoring for scanned URLs."""

__version__ = "1.0.0"
