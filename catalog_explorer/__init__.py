"""Faceted drill-down index over playlist content and its metadata."""

from .explorer import Explorer
from .models import Facet, FacetFilter

__all__ = ["Explorer", "Facet", "FacetFilter"]
