"""Per-request evidence pipeline orchestration."""
