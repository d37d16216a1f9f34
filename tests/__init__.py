"""
Tests package - Test suite for the Warden operator.

Contains:
- unit/: Unit tests for individual components, with the Kubernetes API mocked
"""
