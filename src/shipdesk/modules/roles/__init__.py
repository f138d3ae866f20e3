"""Roles module: role lifecycle, the permission catalogue and assignments."""
