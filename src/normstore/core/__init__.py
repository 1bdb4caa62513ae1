"""Core types and error taxonomy shared by every normstore layer."""
