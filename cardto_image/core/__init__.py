"""
Core Business Logic
==================

Core business logic modules for card to image conversion.

Modules:
- options: option defaults, merging and validation
- rendering: HTML inlining and image capture with browser automation
- storage: persistence of rendered images
- converter: conversion pipeline orchestration
"""
