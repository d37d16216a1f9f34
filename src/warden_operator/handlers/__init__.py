"""
Handlers package - Contains all Kopf event handlers for Warden resources.

This package organizes handlers by resource type:
- warden.py: WardenConfig management of the admission subsystem
"""
