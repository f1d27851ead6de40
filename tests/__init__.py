"""
Test Suite
==========

Test suite matching the cardto_image/ package structure.

Test Categories:
- unit: Unit tests for individual components with Playwright mocked
- integration: End-to-end conversions with a real browser
"""
