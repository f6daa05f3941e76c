"""Problem interface, spaces and shared types."""
