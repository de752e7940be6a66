"""HTTP surface for the Swap Studio stage runtime."""
