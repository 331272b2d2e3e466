"""
Custody Core Primitives — Reusable Building Blocks
===================================================
Primitives are the shared, engine-agnostic building blocks that
the custody engine consumes. They are:

- Pure Python (no Django dependency)
- Immutable (frozen dataclasses)
- Deterministic (same input → same output)

Primitives:
    identity    — Numeric account principal with hex encoding
"""
