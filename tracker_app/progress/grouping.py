"""Partition-then-fold helpers shared by the progress aggregator and the leaderboards."""


def field(record, name, default=None):
    """Read ``name`` from a mapping or an object (model instance, namespace)."""
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def group_by(items, key_fn):
    """Split items into lists keyed by ``key_fn``; keys keep first-seen order."""
    groups = {}
    for item in items:
        groups.setdefault(key_fn(item), []).append(item)
    return groups


def map_values(groups, fold_fn):
    return {key: fold_fn(members) for key, members in groups.items()}


def sort_desc(rows, key_fn):
    # sorted() is stable with reverse=True, so ties keep their encountered order
    return sorted(rows, key=key_fn, reverse=True)
