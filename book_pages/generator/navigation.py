"""Compute navigation chrome for a page from the section tree."""

from __future__ import annotations

import posixpath
import typing as typ

from book_pages.models import NavigationContext, NavLink

if typ.TYPE_CHECKING:
    from book_pages.models import SectionNode
    from book_pages.tree import SectionTree


def relative_href(source_output: str, target_output: str, fragment: str = "") -> str:
    """Return an href from the page at ``source_output`` to ``target_output``.

    Examples
    --------
    >>> relative_href("docs/b/index.html", "docs/a/index.html", "intro")
    '../a/index.html#intro'
    >>> relative_href("docs/a/index.html", "docs/a/index.html", "intro")
    '#intro'
    """
    if fragment and source_output == target_output:
        return f"#{fragment}"
    start = posixpath.dirname(source_output) or "."
    href = posixpath.relpath(target_output, start)
    if fragment:
        href = f"{href}#{fragment}"
    return href


def _link(node: SectionNode, current_output: str) -> NavLink:
    target = node.output_path
    href = relative_href(current_output, target) if target else None
    return NavLink(
        title=node.title,
        href=href,
        output_path=target,
        is_current=target == current_output,
    )


def build_navigation(
    node: SectionNode, tree: SectionTree, reading_order: list[SectionNode]
) -> NavigationContext:
    """Return breadcrumbs, siblings, and prev/next links for ``node``.

    Breadcrumbs run from the root down to the direct parent. Siblings are the
    visible children of the parent in navigation order, the page itself
    included. Previous and next follow the book's reading order, so the last
    page of one section leads into the next section.
    """
    current = node.output_path or ""
    breadcrumbs = tuple(_link(ancestor, current) for ancestor in node.ancestors())
    if node.parent is None:
        peers = [tree.root]
    else:
        peers = [child for child in node.parent.children if not child.hidden]
    siblings = tuple(_link(peer, current) for peer in peers)

    prev_link = next_link = None
    if node in reading_order:
        index = reading_order.index(node)
        if index > 0:
            prev_link = _link(reading_order[index - 1], current)
        if index + 1 < len(reading_order):
            next_link = _link(reading_order[index + 1], current)
    return NavigationContext(
        breadcrumbs=breadcrumbs, siblings=siblings, prev=prev_link, next=next_link
    )


def build_menu(
    node: SectionNode, current_output: str, active: set[str]
) -> list[dict[str, typ.Any]]:
    """Return the sidebar menu entries beneath ``node`` for the current page.

    ``active`` holds the keys of the current page and its ancestors; collapsed
    sections on that trail render open.
    """
    entries: list[dict[str, typ.Any]] = []
    for child in node.children:
        if child.hidden:
            continue
        link = _link(child, current_output)
        entries.append(
            {
                "title": child.title,
                "href": link.href,
                "is_current": link.is_current,
                "is_section": child.is_section,
                "collapsed": child.collapsed and child.key not in active,
                "children": build_menu(child, current_output, active),
            }
        )
    return entries


__all__ = ["build_menu", "build_navigation", "relative_href"]
