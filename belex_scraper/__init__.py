"""BELEX scraper: versioned harvesting of the Bern legal code."""
__version__ = "0.1.0"
