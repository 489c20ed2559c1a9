"""Vocabulary tracking API backend."""
