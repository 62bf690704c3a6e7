"""SQL schema files and the manager that applies them."""

from .schema_manager import SchemaManager

__all__ = ["SchemaManager"]
