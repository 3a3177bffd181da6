"""
Lexical safety filter for Gremlin traversal scripts.

This is a coarse substring denylist, not a parser and not a security
boundary: it catches accidental host-language escapes (process control,
class loading, dynamic evaluation) in scripts sent by an agent. A
determined adversary can obfuscate around it. Scripts are also executed
through the whitelisted step interpreter in traversal_script, which is
what actually prevents arbitrary code from running.
"""

from __future__ import annotations

UNSAFE_TOKENS: tuple[str, ...] = (
    "System.",
    "java.",
    "Runtime.",
    "ProcessBuilder",
    "Class.forName",
    ".class",
    "eval(",
    "exec(",
    "__import__",
    "constructor",
)


def find_unsafe_token(script: str) -> str | None:
    """Return the first denylisted token contained in script, if any."""
    for token in UNSAFE_TOKENS:
        if token in script:
            return token
    return None


def is_unsafe(script: str) -> bool:
    """Check whether a traversal script contains a denylisted token."""
    return find_unsafe_token(script) is not None
