"""Configuration, credentials, HTTP and clock helpers."""
