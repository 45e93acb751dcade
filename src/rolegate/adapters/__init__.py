"""Concrete adapters for the engine ports."""
