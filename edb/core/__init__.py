"""Core functionality (REST client, paths, listings)"""
from .listing import Listing, parse_listing
from .rest_client import RestClient

__all__ = ["Listing", "parse_listing", "RestClient"]
