"""Order lifecycle service: orders, access control, queries and domain events."""
