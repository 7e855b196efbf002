"""HTTP conversion service (FastAPI).

Run with ``filemapper-api`` or ``uvicorn filemapper.server.app:app``.
"""
