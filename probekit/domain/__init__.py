"""Domain models and errors shared by every tool."""
