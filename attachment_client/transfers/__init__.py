"""
Transfer module for client-side attachment reconstruction.

Handles:
- Open transfer bookkeeping
- Control message dispatch
- Size verification of finished attachments
"""
