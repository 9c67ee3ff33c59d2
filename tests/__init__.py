"""Test suite for the POS catalog."""
