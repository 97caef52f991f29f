"""Direct associations: what a node grants by itself, ignoring its hierarchy."""

from typing import Any, List
from targetindex.model.association import PERMISSION, OwnerKind, TargetAssociation
from targetindex.model.catalog import Node
from targetindex.catalog.schema_index import IndexedAttribute
from .base import AssociationProducer
from .bucket import AssociationBucket
from targetindex.config.logging import get_logger

logger = get_logger(__name__)


def coerce_values(value: Any) -> List[str]:
    """Coerce a scalar or list attribute value to a list of strings."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


class DirectAssociationBuilder(AssociationProducer[Node]):
    """
    Build the direct associations of a node.

    One association per unique (indexed attribute, display value) pair and,
    when the schema indexes permissions, one per permission target. The
    first permission seen for a target wins; rights are never merged.
    """

    owner_kind = OwnerKind.NODE

    def produce_required(self, node: Node) -> List[TargetAssociation]:
        app = self.context.schema_index.application_info(node.application)
        schema = app.schema_info(node.type)
        if schema is None:
            logger.debug(f"No schema {node.type} in application {node.application}")
            return []

        bucket = AssociationBucket()

        for att in schema.attributes:
            if not att.is_hierarchy_attribute:
                for value in coerce_values(node.attributes.get(att.name)):
                    self._add_value(node, att, value, bucket)
            else:
                # hierarchy values live on the edge list, not in attributes
                for ref_id in node.inheritance:
                    ref = self.repository.get_node(ref_id)
                    if ref is None:
                        logger.warning(
                            f"Node {node.id} references missing hierarchy node {ref_id}"
                        )
                        continue
                    self._add_value(node, att, ref.value, bucket)

        if schema.has_indexed_permissions:
            for perm in node.permissions:
                if bucket.get_permission(node.application, perm.target) is None:
                    bucket.add(
                        TargetAssociation(
                            application=node.application,
                            target_kind=PERMISSION,
                            target_name=perm.target,
                            rights=perm.rights,
                            hierarchy=node.displayable_name,
                        )
                    )

        return bucket.associations()

    def _add_value(
        self,
        node: Node,
        att: IndexedAttribute,
        value: str,
        bucket: AssociationBucket,
    ) -> None:
        name = att.display_name(value)
        if bucket.get(node.application, att.name, name) is not None:
            return

        assoc = TargetAssociation(
            application=node.application,
            target_kind=att.name,
            target_name=name,
            hierarchy=node.displayable_name,
        )
        if self.options.index_classifications and att.is_hierarchy_attribute:
            assoc.classifications = att.classification_names(value) or None
        bucket.add(assoc)
