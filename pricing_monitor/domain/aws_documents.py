"""
Typed representation of an AWS Price List API product document.
Only the fields used for on-demand VM pricing are modeled; everything else is ignored.
"""
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class _PriceListModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProductAttributes(_PriceListModel):
    """Instance shape facts; the Price List API serializes all of them as strings."""
    memory: Optional[str] = None  # e.g. "8 GiB"
    vcpu: Optional[str] = None  # e.g. "2"


class Product(_PriceListModel):
    attributes: Optional[ProductAttributes] = None


class PriceDimension(_PriceListModel):
    price_per_unit: Dict[str, str] = Field(default_factory=dict, alias="pricePerUnit")


class OnDemandTerm(_PriceListModel):
    # Keyed by opaque rate codes; insertion order follows the document
    price_dimensions: Dict[str, PriceDimension] = Field(default_factory=dict, alias="priceDimensions")


class Terms(_PriceListModel):
    on_demand: Optional[Dict[str, OnDemandTerm]] = Field(default=None, alias="OnDemand")


class AWSPriceListDocument(_PriceListModel):
    """One entry of the `PriceList` array returned by `GetProducts`."""
    product: Optional[Product] = None
    terms: Optional[Terms] = None
