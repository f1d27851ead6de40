"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Renderer, browser and output settings
- logging: Structured logging configuration
"""
