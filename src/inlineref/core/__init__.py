"""Core domain types shared by the editor and services layers."""

from .resources import Resource, ResourceType, coerce_resources, index_resources, normalize_path

__all__ = ["Resource", "ResourceType", "coerce_resources", "index_resources", "normalize_path"]
