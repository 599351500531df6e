"""Live change-event stream resource."""
