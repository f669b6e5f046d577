"""Session core: id pool, tile ownership, spawn registry, replicated state.

Kept free of FastAPI concerns so it can be driven by the WebSocket hub and by tests.
"""
