"""Configuration loading and logging setup for splitdns."""
