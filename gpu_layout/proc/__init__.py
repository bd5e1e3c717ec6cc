"""Processors over the type table."""
from gpu_layout.proc.layouter import Layouter, MemberPlacement, TypeLayout, round_up

__all__ = ['Layouter', 'MemberPlacement', 'TypeLayout', 'round_up']
