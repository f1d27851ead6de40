"""
Data Models
===========

Pydantic data models for conversion options, progress events and results.

Models:
- schemas: option, progress, result and collaborator contract schemas
"""
