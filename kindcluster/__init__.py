"""Configuration, node helpers, command running and CNI config writing for local Kubernetes clusters made of container nodes."""

__version__ = "0.6.0a0"