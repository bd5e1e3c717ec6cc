"""Intermediate type table: handles, arenas, types and constants."""
