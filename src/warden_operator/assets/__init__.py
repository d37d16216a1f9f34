"""Manifests describing the Warden admission subsystem."""
