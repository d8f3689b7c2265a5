"""Scriptorium: retrieval-grounded answers and prayers over the Targossas corpus."""
