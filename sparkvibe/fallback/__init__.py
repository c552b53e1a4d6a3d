"""Offline stand-in responses for the backend operations."""

from sparkvibe.fallback.operations import (
    NoFallbackAvailable,
    Operation,
    resolve_operation,
)
from sparkvibe.fallback.synthesizer import FallbackSynthesizer

__all__ = ["NoFallbackAvailable", "Operation", "resolve_operation", "FallbackSynthesizer"]
