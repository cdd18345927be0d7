"""Narrative layer: wrapped highlights and shareable bangers."""

from chatrewind.insights.bangers import BangerGenerator, BangerSet, SpiceLevel, generate_bangers
from chatrewind.insights.wrapped import WrappedGenerator, build_wrapped

__all__ = [
    "BangerGenerator",
    "BangerSet",
    "SpiceLevel",
    "WrappedGenerator",
    "build_wrapped",
    "generate_bangers",
]
