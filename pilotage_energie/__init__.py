"""Pilotage des indicateurs energetiques : validation et consolidation."""

__version__ = "1.0.0"
