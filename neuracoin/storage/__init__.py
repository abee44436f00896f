"""Persistence adapter"""
from neuracoin.storage.kv_store import KeyValueStore

__all__ = ["KeyValueStore"]
