"""Meal-credit server, client, command line and JSON protocol for a university restaurant."""

__version__ = "0.1.0"

__all__ = ["aluno", "protocol", "database", "client_interface", "dbjson", "client", "server", "cli"]