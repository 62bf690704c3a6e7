"""Registry for discussion formats."""

from discussion_engine.types import DiscussionType
from .base import DiscussionFormat
from .free import FreeFormat
from .one_on_one import OneOnOneFormat
from .pros_cons import ProsConsFormat


class FormatRegistry:
    """Registry for managing available discussion formats."""

    def __init__(self):
        self._formats: dict[str, type[DiscussionFormat]] = {}
        self._register_built_in_formats()

    def _register_built_in_formats(self):
        """Register the built-in discussion formats."""
        self.register(ProsConsFormat)
        self.register(FreeFormat)
        self.register(OneOnOneFormat)

    def register(self, format_class: type[DiscussionFormat]) -> None:
        """Register a discussion format class."""
        instance = format_class()
        self._formats[instance.name] = format_class

    def get_format(self, name: str | DiscussionType) -> DiscussionFormat:
        """Get a format instance by name or discussion type."""
        if isinstance(name, DiscussionType):
            name = name.value
        if name not in self._formats:
            raise ValueError(
                f"Unknown format: {name}. Available: {list(self._formats.keys())}"
            )
        return self._formats[name]()

    def list_formats(self) -> list[str]:
        """List all available format names."""
        return list(self._formats.keys())

    def get_format_descriptions(self) -> dict[str, dict[str, str]]:
        """Get format names, display names, descriptions and timer modes."""
        descriptions: dict[str, dict[str, str]] = {}
        for name, format_class in self._formats.items():
            instance = format_class()
            descriptions[name] = {
                "display_name": instance.display_name,
                "description": instance.description,
                "mode": instance.mode.value,
            }
        return descriptions


# Global registry instance
format_registry = FormatRegistry()
