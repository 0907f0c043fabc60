"""
Test suite for the two-asset liquidity pool

Contains:
- tests/unit/          : Unit tests for individual modules
"""
