"""Plain data types shared across the moderation core."""
