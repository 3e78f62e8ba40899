"""
Schema Explorer Backend - Interactive state, scheduling and HTTP/WebSocket glue.
"""
