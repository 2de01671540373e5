"""Roam graph backend: query execution and block reference expansion."""

from roam_query.graph.client import RoamGraphClient
from roam_query.graph.refs import make_ref_resolver, resolve_refs

__all__ = ["RoamGraphClient", "make_ref_resolver", "resolve_refs"]
