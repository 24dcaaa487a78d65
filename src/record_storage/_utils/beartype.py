from collections.abc import Callable
from typing import Any, TypeVar

from beartype import BeartypeConf, BeartypeStrategy, beartype

T = TypeVar("T", bound=Callable[..., Any])

no_bear_type_check_conf = BeartypeConf(strategy=BeartypeStrategy.O0)

no_bear_type = beartype(conf=no_bear_type_check_conf)

enforce_bear_type_conf = BeartypeConf(strategy=BeartypeStrategy.O1, violation_type=TypeError)

enforce_bear_type = beartype(conf=enforce_bear_type_conf)


def no_bear_type_check(func: T) -> T:
    return no_bear_type(func)


def bear_enforce(func: T) -> T:
    """Check arguments and return values at call time, raising TypeError on a mismatch."""
    return enforce_bear_type(func)


bear_spray = no_bear_type_check
