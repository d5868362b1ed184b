"""Routing: per-method route table with ordered template matching.

Routes are registered during setup and only read once the app freezes.
"""
