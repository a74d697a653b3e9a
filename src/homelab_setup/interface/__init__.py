"""User-facing surfaces for homelab-setup."""
