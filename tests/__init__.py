"""
Tests Package - Unit Tests

Test structure:
- tests/conftest.py - Shared pytest fixtures (mock billing API, sample payloads)
- tests/test_*.py - One module per component

HTTP calls go through httpx.MockTransport; warehouse clients are fakes.
"""
