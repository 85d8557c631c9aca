"""
Common utilities shared by the scan processing package.
"""

from .logger import setup_logger

__all__ = ["setup_logger"]
