"""Swap Studio core: instruction blocks, interpreter and stage runtime."""
