"""Users module for account management."""
