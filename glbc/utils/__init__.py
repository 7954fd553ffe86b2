"""Helpers shared by the backend pool, negotiator and firewall controller."""
