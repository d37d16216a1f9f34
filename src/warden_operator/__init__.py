"""
Warden Operator - Provisions the Warden admission subsystem.

This operator keeps the admission webhooks and the aggregated admission API
correctly configured across cluster flavours:
- Detects whether the cluster injects service CAs automatically
- Injects trust material into webhook and APIService objects when it does not
- Rolls the admission deployment when its serving certificate changes
"""

__version__ = "0.1.0"
