"""
Unit tests for promptstream modules.
"""
