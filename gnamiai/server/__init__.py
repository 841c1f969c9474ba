"""
GnamiAI gateway server.

FastAPI application exposing the control API, the webchat WebSocket and the
lifecycle of the background channels (Telegram polling).
"""
