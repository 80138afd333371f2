"""
Package version: installed distribution metadata, else the engine constant.

Metadata is checked first so an installed build reports the version it was
released under; `ENGINE_VERSION` only answers for a bare source checkout.
"""

from importlib.metadata import PackageNotFoundError, version

from .engine import embedsrc

try:
    __version__ = version("embedsrc")
except PackageNotFoundError:
    # running from a source checkout
    __version__ = embedsrc.ENGINE_VERSION


__all__ = ["__version__"]
