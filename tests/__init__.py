"""BOSH Push Bridge Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - push/: Session registry, payload builder, push channels
  - stream/: Stream events and the event pump
- integration/: Control-plane HTTP tests against the FastAPI app

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/push/

    # Skip the HTTP tests
    pytest -m "not integration"
"""
