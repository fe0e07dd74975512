"""Service layer helpers (persistence, import/export, settings, remote memory)."""
