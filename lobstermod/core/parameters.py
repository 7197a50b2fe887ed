"""
Immutable parameter record shared by all forcing evaluations of a model instance.
"""
from collections.abc import Mapping
from typing import Any, Dict, Optional

from .errors import ConfigurationError
from ..utils import functions as fns


class Parameters(Mapping):
    """
    Read-only mapping from parameter name to value, with attribute access.

    Values are stored as instance attributes so that `params.mu_p` is a plain
    attribute lookup in the forcing functions.
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None, **kwargs):
        for key, value in dict(values or {}, **kwargs).items():
            object.__setattr__(self, key, value)

    @classmethod
    def from_defaults(cls,
                      defaults: Dict[str, Any],
                      overrides: Optional[Dict[str, Any]] = None,
                      owner: str = '') -> 'Parameters':
        """
        Merge a sparse override record into the defaults.

        Args:
            defaults: Complete default record
            overrides: Values replacing some of the defaults
            owner: Model name used in error messages

        Raises:
            ConfigurationError: If an override names an unknown parameter
        """
        overrides = dict(overrides or {})
        unknown = sorted(set(overrides) - set(defaults))
        if unknown:
            where = f' for {owner}' if owner else ''
            raise ConfigurationError(
                f"Unknown parameter(s){where}: {', '.join(unknown)}"
            )
        return cls({**defaults, **overrides})

    def __setattr__(self, name, value):
        raise AttributeError(f"Parameters are immutable, cannot set '{name}'")

    def __delattr__(self, name):
        raise AttributeError(f"Parameters are immutable, cannot delete '{name}'")

    def __getitem__(self, key):
        try:
            return self.__dict__[key]
        except KeyError:
            raise KeyError(key) from None

    def __iter__(self):
        return iter(self.__dict__)

    def __len__(self):
        return len(self.__dict__)

    def __repr__(self):
        items = ', '.join(f'{k}={v!r}' for k, v in self.items())
        return f'Parameters({items})'

    def replace(self, **changes) -> 'Parameters':
        """Return a new record with some values changed."""
        return Parameters.from_defaults(dict(self), changes)

    def overrides_from(self, defaults: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in self.items() if defaults.get(k) != v}

    def compare(self, other: Mapping, print_result: bool = False) -> str:
        return fns.compare_dicts(dict(self), dict(other), print_result=print_result)
