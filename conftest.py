"""
Pytest configuration for the opencv-builder test suite.

Integration tests run the real fetcher and process runner against stand-in
tools; deselect them with `-m "not integration"` for a quick unit run.
"""


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: end-to-end tests that launch stand-in build tools",
    )
