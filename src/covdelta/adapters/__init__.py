"""Adapters wrapping external tools (coverage runner, linter)."""
