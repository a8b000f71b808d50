"""Persisted engine configuration."""

from docrag.config.store import JsonSettingsStore, MemorySettingsStore

__all__ = ["JsonSettingsStore", "MemorySettingsStore"]
