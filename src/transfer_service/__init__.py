"""Peer-to-peer money transfers for chama members."""

__version__ = "0.1.0"
