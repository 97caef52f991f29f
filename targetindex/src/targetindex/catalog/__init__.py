"""Catalog collaborators: repository, plan compiler and schema metadata."""

from .repository import AssociationFilter, Repository, InMemoryRepository
from .plan_compiler import PlanCompiler, RolePlanCompiler
from .schema_index import SchemaIndex, ApplicationInfo, SchemaInfo, IndexedAttribute

__all__ = [
    "AssociationFilter",
    "Repository",
    "InMemoryRepository",
    "PlanCompiler",
    "RolePlanCompiler",
    "SchemaIndex",
    "ApplicationInfo",
    "SchemaInfo",
    "IndexedAttribute",
]
