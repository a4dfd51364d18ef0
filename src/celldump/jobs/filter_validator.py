"""
Import filter validation.

Runs once while the import job is configured, before any task is scheduled. A
filter is usable when its name is registered, the registered class is a concrete
RowFilter, and from_args accepts the configured arguments. Every failure is a
FilterConfigurationError, which fails the whole job with nothing applied.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence

from celldump.core.errors import FilterConfigurationError
from celldump.core.filters import RowFilter, get_filter_class, registered_filters

FilterFactory = Callable[[], RowFilter]


def validate_filter(name: str, args: Sequence[str] = ()) -> FilterFactory:
    """
    Resolve and check a registered filter.

    Returns:
        FilterFactory: Zero-argument factory producing a fresh filter per task.

    Raises:
        FilterConfigurationError: Unknown name, not a concrete RowFilter, or
            arguments rejected by from_args.

    Examples:
        >>> make = validate_filter("prefix", ["row1"])
        >>> make().prefix
        b'row1'
    """
    cls = get_filter_class(name)
    if cls is None:
        known = ", ".join(registered_filters())
        raise FilterConfigurationError(f"filter {name!r} is not registered (known: {known})")
    if not (isinstance(cls, type) and issubclass(cls, RowFilter)):
        raise FilterConfigurationError(
            f"filter {name!r} ({cls.__name__}) does not provide filter_row(row, cells)"
        )
    if inspect.isabstract(cls):
        raise FilterConfigurationError(f"filter {name!r} ({cls.__name__}) is abstract")
    frozen_args = list(args)
    try:
        candidate = cls.from_args(frozen_args)
    except (TypeError, ValueError) as exc:
        raise FilterConfigurationError(
            f"filter {name!r} rejected arguments {frozen_args!r}: {exc}"
        ) from exc
    if not isinstance(candidate, RowFilter):
        raise FilterConfigurationError(f"filter {name!r}.from_args did not return a RowFilter")

    def factory() -> RowFilter:
        return cls.from_args(list(frozen_args))

    return factory
