"""
Attachment transfer protocol shared definitions.

This package contains the pieces of the wire protocol that both sides agree on:
- Message prefixes and framing limits
- The transcoding pipeline (line framing and base64)
- Control message parsing and construction
"""
