"""AccessForge: multi-standard accessibility compliance analysis."""

__version__ = "1.0.0"
