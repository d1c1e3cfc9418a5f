"""Poolshare — core services: errors, arithmetic, auth, events, logging."""
