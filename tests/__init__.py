"""
LendShelf Test Suite

Tests are organized into:
- unit/: Queue, state machine, ledger and service tests
- integration/: HTTP API tests against an in-process app
"""
