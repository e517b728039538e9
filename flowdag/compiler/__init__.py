"""Loaders turning config files and pipeline manifests into kernel objects."""
