"""Equality constraints defining implicit manifolds."""
