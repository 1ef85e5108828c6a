"""
Client utilities: configuration, logging and attachment directory handling.
"""
