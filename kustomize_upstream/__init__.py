"""Split a multi-document manifest stream into kustomize packages."""

__version__ = "0.2.0"
