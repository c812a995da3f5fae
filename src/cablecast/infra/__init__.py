"""
Infrastructure layer - persistence, logging, settings, and technical concerns.
"""
