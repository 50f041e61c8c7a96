"""Storage tiers: cache, durable database and repositories."""
