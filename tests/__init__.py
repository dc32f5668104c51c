"""Test package for Light-GTP.

This package contains all test modules organized by test type:
- unit/: Unit tests for individual modules
- components/: Stream-level tests of a whole GTP session
- integration/: Tests over a real TCP connection
"""
