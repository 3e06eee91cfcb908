"""Shared models for buildcache."""

from .base import CamelCaseModel

__all__ = [
    "CamelCaseModel",
]
