"""Worked example problems built on the solver."""
