"""
Device Factory Management - API Routers
Version: 1.0.0

Changelog:
v1.0.0 (2026-02-27): Initial API package
"""
