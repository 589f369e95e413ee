"""Java runtime discovery."""

from .java_manager import JavaManager

__all__ = ["JavaManager"]
