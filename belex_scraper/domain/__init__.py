"""
BELEX Domain Layer

Entities, record kinds and repository ports for the Bern legal-code scraper.
All domain objects are immutable (frozen dataclasses) with ZERO external dependencies.
"""
