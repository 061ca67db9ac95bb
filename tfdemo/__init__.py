"""Reading and writing Source engine demo packets, net messages and string tables."""

__version__ = "0.1.0"