"""HTTP surface of the QRious backend."""
