"""
Block data loading for fee replays.
"""

from .loader import DataLoader

__all__ = ["DataLoader"]
