"""Radial pointer menu overlay for Wayland compositors."""

__version__ = "0.3.0"

__all__ = ["__version__"]
