"""Clients for the portal's external collaborators."""
