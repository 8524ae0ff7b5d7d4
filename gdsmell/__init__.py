"""gdsmell: structural code smell analysis for Godot / GDScript projects."""

__version__ = "1.0.0"
