"""Bibliographic metadata lookup (CrossRef)."""
