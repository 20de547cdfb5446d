"""Library App - utility helpers (payload validation)."""
