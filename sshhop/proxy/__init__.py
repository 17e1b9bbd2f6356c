"""
Port forwarding
"""
from .forwarder import ForwardConfig, LocalForwarder

__all__ = ["ForwardConfig", "LocalForwarder"]
