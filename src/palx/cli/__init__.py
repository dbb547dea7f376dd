"""
PALX Command-Line Interface
===========================

This package provides the **palx** command, a Click-based front end to
the PDP-8 / IM6100 / HD6120 cross assembler.
"""

__all__ = ["palx"]
