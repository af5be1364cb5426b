"""Core package"""

from .monitor import PondMonitor

__all__ = ['PondMonitor']
