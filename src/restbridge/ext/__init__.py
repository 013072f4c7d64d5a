"""Optional integrations (install extras to enable)."""
