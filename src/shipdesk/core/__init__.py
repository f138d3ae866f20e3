"""Cross-cutting concerns: database, errors, logging, auth and permissions."""
