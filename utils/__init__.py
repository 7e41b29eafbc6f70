"""Utility package for image stacker."""

from . import image_operations, validation

__all__ = ["image_operations", "validation"]
