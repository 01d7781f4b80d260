"""Cloud provider catalogs."""
from archforge.providers import aws
from archforge.providers.catalog import ProviderCatalog, ProviderRegistry, Reference, RenderedResource, ResourceSpec


def default_providers() -> ProviderRegistry:
    return ProviderRegistry([aws.build_catalog()])


__all__ = [
    "ProviderCatalog",
    "ProviderRegistry",
    "Reference",
    "RenderedResource",
    "ResourceSpec",
    "default_providers",
]
