"""Core domain logic: discovery, caching, command execution, and config."""
