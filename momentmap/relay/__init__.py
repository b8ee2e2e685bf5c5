"""
Realtime relay app.

This app contains:
- A Channels consumer for `/ws/relay/`
- In-memory presence, ephemeral content, rooms and direct messaging
- Everything lives in one process; there is no cross-instance fan-out
"""
