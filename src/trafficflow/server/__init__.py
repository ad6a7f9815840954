"""HTTP and WebSocket service for the traffic flow layer."""
