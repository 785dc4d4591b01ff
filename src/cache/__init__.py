"""Evidence cache: query hashing, backends, metrics and the best-effort cache wrapper."""
