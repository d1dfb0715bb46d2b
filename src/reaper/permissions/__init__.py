"""Permission resolution and grant management."""
