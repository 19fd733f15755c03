"""Payment mechanisms supported by the facilitator."""
