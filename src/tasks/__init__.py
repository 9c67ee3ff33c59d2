"""Celery tasks for the POS catalog."""
