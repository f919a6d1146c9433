"""HTTP surface for cron-driven health checks."""
