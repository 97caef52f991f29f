"""Corpus model: a serializable snapshot of everything the indexer reads and writes."""

from typing import List
from pydantic import BaseModel, Field
from .catalog import Application, Classification, Node, Role
from .association import TargetAssociation


class Corpus(BaseModel):
    """Applications, nodes, roles, classifications and target associations."""

    applications: List[Application] = Field(default_factory=list)
    nodes: List[Node] = Field(default_factory=list)
    roles: List[Role] = Field(default_factory=list)
    classifications: List[Classification] = Field(default_factory=list)
    associations: List[TargetAssociation] = Field(default_factory=list)
