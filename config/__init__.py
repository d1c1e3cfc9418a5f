"""Poolshare — configuration."""
