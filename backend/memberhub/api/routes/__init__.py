"""Route modules for memberhub."""
from . import pages

__all__ = ["pages"]
