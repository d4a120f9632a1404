"""
Gateway: WebSocket endpoint, connection auth and read API around the
suggestion pipeline.
"""
