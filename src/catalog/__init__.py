from catalog.model import ApiSig, AdtDef, Catalog, FieldDef, GenericParamDef, VariantDef
from catalog.loader import CatalogError, catalog_from_dict, load_catalog

__all__ = [
    "ApiSig",
    "AdtDef",
    "Catalog",
    "FieldDef",
    "GenericParamDef",
    "VariantDef",
    "CatalogError",
    "catalog_from_dict",
    "load_catalog",
]
