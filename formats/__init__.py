"""Discussion format definitions and implementations."""

from .base import DiscussionFormat, FormatPhase
from .free import FreeFormat
from .one_on_one import OneOnOneFormat
from .pros_cons import ProsConsFormat
from .registry import format_registry

__all__ = [
    'DiscussionFormat',
    'FormatPhase',
    'FreeFormat',
    'OneOnOneFormat',
    'ProsConsFormat',
    'format_registry'
]
