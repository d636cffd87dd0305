"""
Tests for the kurento-test harness.

- unit/: harness components against fakes and mocks (no media server needed)
- functional/: media scenarios against a real media server and browsers
  (run with --functional)
"""
