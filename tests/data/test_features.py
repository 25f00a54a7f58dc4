import sys

import pytest

from workspace_runner.data import Diagnostics, FeatureBag
from workspace_runner.errors import FeatureNotFoundError


class Timing:
    def __init__(self, seconds: float) -> None:
        self.seconds = seconds


def test_get_absent_returns_none():
    bag = FeatureBag()
    assert bag.get(Diagnostics) is None
    assert Diagnostics not in bag
    assert len(bag) == 0


def test_empty_feature_is_distinguishable_from_absence():
    bag = FeatureBag()
    bag.set(Diagnostics())
    found = bag.get(Diagnostics)
    assert found is not None
    assert len(found) == 0
    assert Diagnostics in bag


def test_set_replaces_same_type():
    bag = FeatureBag()
    first, second = Timing(1.0), Timing(2.0)
    bag.set(first)
    bag.set(second)
    assert bag.get(Timing) is second
    assert len(bag) == 1


def test_keys_are_exact_types():
    class FineTiming(Timing):
        pass

    bag = FeatureBag()
    bag.set(FineTiming(1.0))
    assert bag.get(Timing) is None
    assert isinstance(bag.get(FineTiming), FineTiming)
    assert list(bag) == [FineTiming]


def test_none_rejected():
    with pytest.raises(ValueError):
        FeatureBag().set(None)


def test_require():
    bag = FeatureBag()
    timing = Timing(0.5)
    bag.set(timing)
    assert bag.require(Timing) is timing
    with pytest.raises(FeatureNotFoundError):
        bag.require(Diagnostics)
    # FeatureNotFoundError is a KeyError
    with pytest.raises(KeyError):
        bag.require(Diagnostics)


def test_freeze():
    bag = FeatureBag()
    bag.set(Timing(1.0))
    assert bag.freeze() is bag
    assert bag.frozen
    with pytest.raises(RuntimeError):
        bag.set(Diagnostics())
    assert bag.get(Timing).seconds == 1.0


if __name__ == "__main__":
    pytest.main(sys.argv)
