"""Assemble loaded documents into the navigation section tree.

Directories become sections. A directory's ``_index`` document supplies the
section's title, weight, and flags; directories without one get a synthetic
node titled from the directory name. Siblings are ordered by weight, then by
lexical source path, so navigation is stable across rebuilds.
"""

from __future__ import annotations

import dataclasses as dc
import posixpath
import typing as typ

import structlog

from .front_matter import derive_title
from .models import SectionNode

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import Document

logger = structlog.get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class SectionTree:
    """The navigation tree plus lookups from document ids to nodes."""

    root: SectionNode
    nodes_by_doc: typ.Mapping[str, SectionNode]

    def node_for(self, doc_id: str) -> SectionNode:
        """Return the node carrying ``doc_id``."""
        return self.nodes_by_doc[doc_id]

    def reading_order(self) -> list[SectionNode]:
        """Return visible page-bearing nodes in preorder.

        Hidden nodes and everything beneath them are skipped.
        """
        ordered: list[SectionNode] = []

        def _visit(node: SectionNode) -> None:
            if node.hidden:
                return
            if node.document is not None:
                ordered.append(node)
            for child in node.children:
                _visit(child)

        _visit(self.root)
        return ordered


class TreeBuilder:
    """Build a :class:`SectionTree` from a complete document set."""

    def __init__(self, site_name: str) -> None:
        self.site_name = site_name

    def build(self, documents: cabc.Iterable[Document]) -> SectionTree:
        """Return the section tree for ``documents``.

        Parameters
        ----------
        documents : Iterable[Document]
            Every document of the build; ids must be unique.

        Returns
        -------
        SectionTree
            Root node and an index mapping each document id to exactly one
            node.
        """
        sections: dict[str, SectionNode] = {}
        nodes_by_doc: dict[str, SectionNode] = {}
        root = self._section_for("", sections)

        pages: list[Document] = []
        for document in documents:
            if document.is_section_index:
                node = self._section_for(document.directory, sections)
                self._attach_index(node, document)
                nodes_by_doc[document.doc_id] = node
            else:
                pages.append(document)

        for document in pages:
            parent = self._section_for(document.directory, sections)
            leaf = SectionNode(
                key=document.doc_id,
                title=document.title,
                document=document,
                weight=document.weight,
                sort_path=document.doc_id,
                hidden=document.hidden,
                parent=parent,
            )
            parent.children.append(leaf)
            nodes_by_doc[document.doc_id] = leaf

        for node in root.walk():
            node.children.sort(key=_sibling_key)
        logger.info("SECTION_TREE_BUILT", sections=len(sections), pages=len(pages))
        return SectionTree(root=root, nodes_by_doc=nodes_by_doc)

    def _section_for(self, key: str, sections: dict[str, SectionNode]) -> SectionNode:
        """Return the section node for directory ``key``, creating ancestors."""
        existing = sections.get(key)
        if existing is not None:
            return existing
        parent = None
        if key:
            parent = self._section_for(posixpath.dirname(key), sections)
        title = derive_title(posixpath.basename(key)) if key else self.site_name
        node = SectionNode(
            key=key,
            title=title,
            sort_path=key,
            is_section=True,
            parent=parent,
        )
        if parent is not None:
            parent.children.append(node)
        sections[key] = node
        return node

    @staticmethod
    def _attach_index(node: SectionNode, document: Document) -> None:
        node.document = document
        node.title = document.title
        node.weight = document.weight
        node.collapsed = document.collapse_section
        node.hidden = document.hidden


def _sibling_key(node: SectionNode) -> tuple[int, str]:
    return (node.weight, node.sort_path)


__all__ = ["SectionTree", "TreeBuilder"]
