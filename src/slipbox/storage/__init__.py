"""Relational storage shared by all stores."""
