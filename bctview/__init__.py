"""Decode BCT and DDS textures to BGRA and browse them in a Tk viewer."""

__version__ = "0.1.0"

__all__ = ["__version__"]