"""
LendShelf

Peer-to-peer book lending: users list books, request books owned by
others, and owners approve or reject those requests. Sharing and
borrowing earn points in a per-user ledger.
"""

__version__ = "1.0.0"
