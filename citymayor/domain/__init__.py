"""Domain layer (pure logic).

- Keep economy and grid rules here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no Redis.
- Prefer deterministic functions (time passed in as an argument).
"""
