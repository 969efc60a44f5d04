"""Scraper for the daily lunch menus of the Unica university restaurants."""

__version__ = "0.1.0"
