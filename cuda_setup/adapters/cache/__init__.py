"""Cache tiers: machine-local tool cache and shared remote cache."""
