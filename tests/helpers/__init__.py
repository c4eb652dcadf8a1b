"""
Test helper utilities for overlapscope testing.

This module provides reusable utilities for:
- Generating synthetic interval sets
- Computing reference overlap results by brute force
"""
