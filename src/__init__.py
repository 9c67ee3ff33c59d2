"""POS catalog service."""
