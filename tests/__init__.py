# powledger Test Suite
"""
Test suite including:
- Unit tests
- Integration tests
- Security tests (tampered chains)

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
