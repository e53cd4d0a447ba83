"""Invocation result cache."""

from hollow.cache.invocation_cache import InvocationCache, canonical_json, make_key

__all__ = ["InvocationCache", "canonical_json", "make_key"]
