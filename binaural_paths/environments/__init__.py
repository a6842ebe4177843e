"""
Worlds the walker moves through.

- speaker_field: Two point sources, a start and a goal
"""

from .speaker_field import SpeakerField, Source, FieldConfig, TargetMode

__all__ = ["SpeakerField", "Source", "FieldConfig", "TargetMode"]
