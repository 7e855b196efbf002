"""Path flattening: deep hierarchical field paths -> short unique names.

WHY: JSON and XML sources produce long addresses such as
``PurchaseOrder/Header/Supplier/Name``. People authoring a mapping want
to see ``Name``, but only when that stays unambiguous across the file.

HOW: Two steps. First strip the longest ancestor prefix shared by every
path (never the leaf). Then keep the shortest trailing segment run that
makes all names pairwise distinct, starting with the leaf alone and adding
one parent segment at a time.

RULES:
- The leaf segment is never part of the common prefix, even if shared
- A prefix segment must be identical across *all* paths; stop at the first
  mismatch
- The prefix is joined with "/" and carries a trailing "/"; "" if none
- A path is stripped only if it actually starts with the prefix
- Depth grows from 1 up to the longest stripped path; distinct inputs are
  always resolved by then
- Empty input -> empty map; a single path -> its leaf
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from filemapper.core.records import PATH_SEPARATOR, split_path


def common_prefix(paths: Sequence[str]) -> str:
    """Return the shared ancestor prefix of all paths, with trailing "/".

    Args:
        paths: Slash-delimited field paths.

    Returns:
        The common prefix (e.g. ``"order/"``) or "" if nothing is shared.
    """
    if not paths:
        return ""

    segment_lists = [split_path(p) for p in paths]
    min_segments = min(len(s) for s in segment_lists)
    shared: List[str] = []

    # -1 keeps at least the leaf segment out of the prefix
    for i in range(min_segments - 1):
        candidate = segment_lists[0][i]
        if all(s[i] == candidate for s in segment_lists):
            shared.append(candidate)
        else:
            break

    if not shared:
        return ""
    return PATH_SEPARATOR.join(shared) + PATH_SEPARATOR


def flatten(paths: Sequence[str], prefix: Optional[str] = None) -> Dict[str, str]:
    """Map each original path to a short, unique display name.

    Args:
        paths: Distinct slash-delimited field paths, in display order.
        prefix: Explicit prefix to strip instead of the computed one
            (FlatteningConfiguration.common_prefix). A missing trailing "/"
            is added.

    Returns:
        Dict of original path -> flattened name, in input order.
    """
    if not paths:
        return {}

    if prefix is None:
        prefix = common_prefix(paths)
    elif prefix and not prefix.endswith(PATH_SEPARATOR):
        prefix += PATH_SEPARATOR

    stripped = [
        p[len(prefix):] if prefix and p.startswith(prefix) else p
        for p in paths
    ]
    return _resolve_unique(paths, stripped)


def _resolve_unique(originals: Sequence[str], stripped: Sequence[str]) -> Dict[str, str]:
    segment_lists = [split_path(s) for s in stripped]
    max_depth = max(len(s) for s in segment_lists)

    for depth in range(1, max_depth + 1):
        names = [PATH_SEPARATOR.join(s[-depth:]) for s in segment_lists]
        if len(set(names)) == len(names):
            return dict(zip(originals, names))

    # Only reachable with repeated input paths
    return dict(zip(originals, stripped))
