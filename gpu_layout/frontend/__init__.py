"""
Type table description frontend.

Exports:
    parse_description: Parse a description into type and constant arenas
    TypeTable: Arenas and names produced by the builder
"""
from gpu_layout.frontend.builder import TableBuilder, TypeTable
from gpu_layout.frontend.parser import parse_description, parse_tree

__all__ = [
    'TableBuilder',
    'TypeTable',
    'parse_description',
    'parse_tree',
]
