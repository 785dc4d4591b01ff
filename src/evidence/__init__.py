"""Evidence models, guideline conflict detection and sufficiency scoring."""
