"""
Rendering Module
===============

HTML preparation and image creation with browser automation.

Components:
- html_converter: HTML generation collaborator contract and file set passthrough
- inliner: Embed stylesheets and images into a single HTML document
- image_generator: Browser automation for PNG/JPEG screenshot generation
"""
