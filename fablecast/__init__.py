"""Fablecast: illustrated, narrated children's stories built section by section."""

__version__ = "1.0.0"
