"""Codebase scanning and LLM-backed analysis."""
