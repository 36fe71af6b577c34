"""Output consumers. Import a module to register its consumer."""
