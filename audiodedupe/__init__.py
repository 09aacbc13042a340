"""
audiodedupe

Duplicate detection and safe consolidation for personal music libraries.
"""

__version__ = "0.4.0"
