"""
pgsample - Dump a reduced, referentially-consistent sample of a PostgreSQL database.

Reads a YAML manifest naming the tables to export, orders them so every table
comes after the tables it references, and writes a replayable SQL script
made of COPY blocks.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
