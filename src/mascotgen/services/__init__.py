"""Service layer: dispatch primitives, provider and Slack clients, storage."""
