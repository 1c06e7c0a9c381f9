"""MCP stdio server exposing page sessions as tools."""
