"""
clustering.py

Duplicate group construction.

Every unordered pair of files is compared once. Pairs scoring at least
the threshold become edges of an undirected graph; each connected
component with two or more files is a duplicate group. Grouping is
transitive: two members of a group need not match each other directly,
so confidence and match reasons are recomputed over every intra-group
pair rather than just the edges that connected them.
"""

import math

from tqdm import tqdm

from audiodedupe.matcher import MatcherSettings, compare_files
from audiodedupe.metadata import keeper_score
from audiodedupe.models import DuplicateGroup


def maybe_progress(it, desc=None, enable=False, total=None):
    if enable:
        return tqdm(it, desc=desc, total=total)
    return it


def build_match_graph(records, settings: MatcherSettings, progress=False):
    """
    Adjacency lists (path -> neighbour paths) for all matching pairs.
    Insertion order follows the record order, so traversal is stable.
    """
    graph = {}

    for i in maybe_progress(range(len(records)), "Comparing", progress):
        a = records[i]
        for b in records[i + 1:]:
            result = compare_files(a, b, settings)
            if result.score < settings.score_threshold:
                continue
            graph.setdefault(a.path, []).append(b.path)
            graph.setdefault(b.path, []).append(a.path)

    return graph


def connected_components(graph):
    """Breadth-first components; singletons are dropped."""
    visited = set()
    components = []

    for start in graph:
        if start in visited:
            continue

        component = []
        queue = [start]
        visited.add(start)

        while queue:
            current = queue.pop(0)
            component.append(current)
            for neighbour in graph.get(current, ()):
                if neighbour not in visited:
                    visited.add(neighbour)
                    queue.append(neighbour)

        if len(component) > 1:
            components.append(component)

    return components


def round_half_up(value):
    """Round half up (0.5 -> 1), as the stored confidences always have."""
    return int(math.floor(value + 0.5))


def summarize_group(paths, store, settings: MatcherSettings):
    """Return (confidence, reasons) over every intra-group pair."""
    total = 0
    comparisons = 0
    reasons = []

    for i, path_a in enumerate(paths):
        a = store.get(path_a)
        if a is None:
            continue
        for path_b in paths[i + 1:]:
            b = store.get(path_b)
            if b is None:
                continue
            result = compare_files(a, b, settings)
            total += result.score
            comparisons += 1
            for reason in result.reasons:
                if reason not in reasons:
                    reasons.append(reason)

    if comparisons == 0:
        return 0, reasons

    return round_half_up(total / comparisons), reasons


def select_best_file(paths, store):
    """Most tagged, then highest quality; the first file wins a tie."""
    best = None
    best_score = -1

    for path in paths:
        record = store.get(path)
        if record is None:
            continue
        score = keeper_score(record)
        if score <= best_score:
            continue
        best_score = score
        best = path

    return best


def find_duplicates(store, settings: MatcherSettings, progress=False):
    """
    Group the files of `store` (path -> AudioRecord) into duplicate groups,
    highest confidence first.
    """
    records = list(store.values())
    graph = build_match_graph(records, settings, progress=progress)

    groups = []
    for number, paths in enumerate(connected_components(graph), start=1):
        confidence, reasons = summarize_group(paths, store, settings)
        groups.append(DuplicateGroup(
            id=f"group-{number}",
            confidence=confidence,
            files=paths,
            match_reasons=reasons,
            suggested_keep=select_best_file(paths, store),
        ))

    groups.sort(key=lambda g: g.confidence, reverse=True)
    return groups
