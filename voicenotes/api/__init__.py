"""FastAPI application, REST routes and the progress WebSocket."""
