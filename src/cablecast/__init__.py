"""
CableCast - linear broadcast channel emulation.

Assembles gapless timelines of programs from a pool of media items and
keeps them topped up into the future.
"""

__version__ = "0.1.0"
