"""pagecrop: mark one crop rectangle per PDF page on a zoomable preview."""

__version__ = "0.1.0"
