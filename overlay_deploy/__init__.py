"""Overlay Deploy: deploy a service by editing its kustomize overlay."""

__version__ = "0.1.0"
