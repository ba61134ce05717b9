"""
HPCE SDK Test Suite.

This package contains:
- unit/: Unit tests (no network, collaborators mocked)
- integration/: Engine tests against an in-memory fake engine over httpx.MockTransport
"""
