"""Data contracts shared between panels and their renderers."""

from .snapshot import ClockSnapshot, format_mmss, format_ss

__all__ = ['ClockSnapshot', 'format_mmss', 'format_ss']
