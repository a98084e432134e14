"""Nexus: knowledge graph store and query engine for captured content."""
