"""Spyglass - reconnaissance crawler for mapping a target's linked resources."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("spyglass")
except PackageNotFoundError:
    __version__ = "dev"
