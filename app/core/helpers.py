"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Human-friendly random code generation (cryptographic)

These utilities are pure infrastructure - they have no knowledge
of domain concepts like users, chats, or statuses.

Usage:
    from core.helpers import generate_code

    code = generate_code(8)  # e.g. "K7PX2QMA"
"""

from __future__ import annotations

import secrets

# Excludes look-alike characters (0/O, 1/I/L) so codes can be read aloud
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


def generate_code(length: int = 8, alphabet: str = CODE_ALPHABET) -> str:
    """
    Generate a cryptographically secure, human-friendly random code.

    Uses secrets module for secure random generation.

    Args:
        length: Number of characters in the code
        alphabet: Characters to draw from

    Returns:
        Random code string

    Example:
        code = generate_code(6)  # Returns a 6 character code like "K7PX2Q"
    """
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(alphabet) for _ in range(length))
