"""Remote service integrations."""
