"""Public entry points for running the evidence pipeline."""
