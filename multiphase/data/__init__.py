"""Data modules - sample species database."""

from .species_db import create_sample_database

__all__ = [
    "create_sample_database",
]
