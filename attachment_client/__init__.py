"""
Client package for the attachment transfer protocol.

This package contains the client-side functionality including:
- Connection management
- Transfer registry and protocol dispatch
- Qt signal bridge for user interfaces
- Configuration and utilities
"""
