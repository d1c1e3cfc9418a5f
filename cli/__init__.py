"""Poolshare — command-line tools."""
