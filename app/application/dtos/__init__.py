"""Translation of Stripe payloads into domain values."""
