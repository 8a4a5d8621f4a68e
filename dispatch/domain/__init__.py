"""Pure domain helpers (naming conventions, record builders, status rules)."""
