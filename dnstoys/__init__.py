"""A DNS server that answers TXT queries with small tools: time, weather, conversions and more."""

__version__ = "1.0.0"