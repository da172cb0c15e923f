"""Letterstream: Letterboxd ratings served as Stremio catalog add-ons."""

__version__ = "1.0.1"
