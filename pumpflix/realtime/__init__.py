"""Live workflow status over WebSockets."""
