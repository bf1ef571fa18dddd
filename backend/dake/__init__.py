"""Dake: confidential parimutuel prediction-market settlement client."""

__version__ = "0.1.0"
__author__ = "Dake Team"

__all__ = ["__version__", "__author__"]
