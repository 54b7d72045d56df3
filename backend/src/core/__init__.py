"""Configuration, errors and shared infrastructure clients."""
