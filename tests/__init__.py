"""IR Gateway Test Suite.

Test Organization:
    tests/
        unit/               - Unit tests for individual modules
            ir_gateway/     - Tests for the application package
                core/       - Core infrastructure tests
        fakes.py            - Controller test double
        conftest.py         - Pytest configuration and global fixtures

Running Tests:
    # Run all tests
    pytest

    # Run specific test file
    pytest tests/unit/ir_gateway/test_gateway.py

    # Run tests matching pattern
    pytest -k transmit
"""
