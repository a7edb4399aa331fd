"""Credential and HTTP transport helpers."""
