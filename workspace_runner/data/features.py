"""Type-keyed container for optional result artifacts."""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional, Type, TypeVar

from workspace_runner.errors import FeatureNotFoundError

T = TypeVar("T")


class FeatureBag:
    """An extensible, type-keyed store of optional artifacts.

    Each feature is keyed by its exact type, so the bag holds at most one artifact per
    type. ``get`` returns ``None`` only when no artifact of that type was stored; ``None``
    itself can never be stored, so a present-but-empty artifact (e.g. an empty
    ``Diagnostics``) is always distinguishable from absence.

    The orchestrator populates the bag once and then freezes it.
    """

    _features: Dict[type, Any]
    _frozen: bool

    def __init__(self) -> None:
        self._features = {}
        self._frozen = False

    def set(self, feature: Any) -> None:
        """Store a feature, replacing any prior feature of the same type.

        Parameters
        ----------
        feature : Any
            The artifact to store. Its type is the lookup key.

        Raises
        ------
        ValueError
            If feature is None.
        RuntimeError
            If the bag has been frozen.
        """
        if feature is None:
            raise ValueError("Cannot store None as a feature")
        if self._frozen:
            raise RuntimeError("FeatureBag is read-only")
        self._features[type(feature)] = feature

    def get(self, feature_type: Type[T]) -> Optional[T]:
        """Return the feature stored under feature_type, or None if absent."""
        return self._features.get(feature_type)

    def require(self, feature_type: Type[T]) -> T:
        """Return the feature stored under feature_type.

        Raises
        ------
        FeatureNotFoundError
            If no feature of that type is stored.
        """
        try:
            return self._features[feature_type]
        except KeyError:
            raise FeatureNotFoundError(feature_type.__name__) from None

    def freeze(self) -> "FeatureBag":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, feature_type: object) -> bool:
        return feature_type in self._features

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[type]:
        return iter(self._features)

    def __repr__(self) -> str:
        names = ", ".join(t.__name__ for t in self._features)
        return f"FeatureBag([{names}])"
