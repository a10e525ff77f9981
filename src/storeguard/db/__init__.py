"""Persistence layer for Storeguard."""
