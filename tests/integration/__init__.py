"""
Integration tests for filterspec.

These tests verify that specs, instances, query building and persistence
work together correctly.
"""
