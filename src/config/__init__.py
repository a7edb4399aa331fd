"""Configuration loading for the billing watcher."""
