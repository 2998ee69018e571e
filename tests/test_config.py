import pytest

from admmnet.config import RunConfig


def test_defaults():
    config = RunConfig()

    assert config.num_iter == 100
    assert config.threshold == 3e-5
    assert config.retain_history and config.halt_on_divergence
    assert config.seed is None and not config.shuffle


@pytest.mark.parametrize("options", [{"num_iter": 0}, {"num_iter": 2.5}, {"num_iter": True},
                                     {"threshold": -1}, {"threshold": float("nan")}, {"seed": 1.5}])
def test_invalid_options(options):
    with pytest.raises(ValueError):
        RunConfig(**options)


def test_from_kwargs():
    assert RunConfig.from_kwargs(num_iter=5, seed=3).num_iter == 5

    with pytest.raises(ValueError, match="max_iter"):
        RunConfig.from_kwargs(max_iter=5)
