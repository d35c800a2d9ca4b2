"""
Functional helpers

Small map/reduce building blocks used by the reshape transformers.
"""

from functools import reduce
from typing import Any, Callable, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")

_MISSING = object()


def compose(*funcs: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """
    Compose single-argument functions left to right

    compose(f, g)(x) == g(f(x)); compose() is the identity.
    """
    return lambda value: reduce(lambda acc, func: func(acc), funcs, value)


def map_list(func: Callable[[T], R], items: Iterable[T]) -> List[R]:
    """Apply func to each item and return the results as a list"""
    return list(map(func, items))


def fold(func: Callable[[Any, T], Any], items: Iterable[T], initial: Any = _MISSING) -> Any:
    """
    Reduce items pairwise with func

    Args:
        func: Binary function (accumulator, item) -> accumulator
        items: Items to combine, in order
        initial: Optional starting accumulator

    Returns:
        The accumulated result

    Raises:
        ValueError: If items is empty and no initial value is given
    """
    items = list(items)
    if initial is _MISSING:
        if not items:
            raise ValueError("fold() of empty sequence with no initial value")
        return reduce(func, items)
    return reduce(func, items, initial)
