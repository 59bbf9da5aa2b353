"""
Glowfit - HTTP API.
"""
