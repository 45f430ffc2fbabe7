"""
Slices: partition keys, pages, range generators and the text codec.
"""

from slicer.slices.codec import KeyCodec, KeyCodecRegistry, SliceCodec, default_registry
from slicer.slices.generators import datetime_slices, range_slices
from slicer.slices.models import Page, Slice

__all__ = [
    "Slice",
    "Page",
    "range_slices",
    "datetime_slices",
    "KeyCodec",
    "KeyCodecRegistry",
    "SliceCodec",
    "default_registry",
]
