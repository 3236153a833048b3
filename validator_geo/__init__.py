"""Validator geolocation worker."""
