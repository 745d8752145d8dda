"""Intensive property tests for incremental reparsing.

This package contains:
- test_incremental_property: verifier, undo and minimizer properties over
  the reference engine across edit policies and encodings

Run with: pytest -m fuzz

Python 3.13+.
"""
