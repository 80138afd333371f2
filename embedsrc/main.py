"""Compatibility module: the engine class lives in `engine.py`.

Older imports of `embedsrc.main.embedsrc` keep working.
"""

from .engine import embedsrc

__all__ = ["embedsrc"]
