"""Fundspace - grant discovery, funder directory and nonprofit onboarding for the Fundspace network."""

__version__ = "1.0.0"
__author__ = "Fundspace Engineering"
__description__ = "Grant discovery, funder directory and nonprofit onboarding service for the Fundspace network"

__all__ = ["__version__", "__author__", "__description__"]
