"""Markup module: fee markup rules and the customer fee calculator."""
