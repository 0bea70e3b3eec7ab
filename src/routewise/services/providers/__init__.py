"""Collaborator contracts and the AMap adapter."""
