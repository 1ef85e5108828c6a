"""
Qt integration for surfacing transfer events in a user interface.
"""
