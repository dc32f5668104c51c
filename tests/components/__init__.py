"""Component tests for Light-GTP.

These tests drive :class:`api.gtp_interface.GTPSession` through in-memory
streams, the way a controller would, and check the exact bytes written back.
"""
