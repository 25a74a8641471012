"""
Core Job Components.

Structure:
    models/: Pure data structures (no business logic)
    logic/: Business rules that operate on the models
"""

from . import models
from . import logic

__all__ = ['models', 'logic']
