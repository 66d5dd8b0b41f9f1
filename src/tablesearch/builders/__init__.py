from .metadata_builder import MetadataBuilder

__all__ = ["MetadataBuilder"]
