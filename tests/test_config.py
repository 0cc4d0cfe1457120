import json

import pytest

from stance_ml.config import (CVConfig, FeatureConfig, ModelConfig,
                              NormalizerConfig, PipelineConfig, SplitConfig,
                              load_config)
from stance_ml.errors import ConfigError
from stance_ml.models import PARAM_GRIDS


def test_defaults():
    cfg = PipelineConfig()
    assert [m.family for m in cfg.models] == ["knn", "svm_linear", "xgboost"]
    assert cfg.models[0].param_grid == PARAM_GRIDS["knn"]
    assert cfg.split.test_size == 0.3
    assert cfg.cv.n_splits == 5


def test_from_dict():
    cfg = PipelineConfig.from_dict({
        "text_col": "tweet",
        "normalizer": {"stop_words": ["i", "is"], "use_wordnet": False, "lemmas": {"apps": "app"}},
        "features": {"min_count": 2, "min_doc_fraction": 0.01, "keywords": {"apple": "iphone|ios"}},
        "split": {"test_size": 0.2, "seed": 1},
        "cv": {"n_splits": 3, "n_repeats": 2, "scoring": "balanced_accuracy"},
        "models": ["knn", {"family": "svm_linear", "param_grid": {"C": [0.1, 1]}, "balance": "smote"}],
        "one_vs_all": ["knn"],
    })
    assert cfg.text_col == "tweet"
    assert cfg.normalizer.stop_words == ("i", "is")
    assert cfg.features.min_count == 2
    assert cfg.split.seed == 1
    assert cfg.cv.n_repeats == 2
    assert cfg.models[1].param_grid == {"C": [0.1, 1]}
    assert cfg.models[1].balance == "smote"
    assert cfg.one_vs_all == ("knn",)


def test_load_config(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"models": [{"family": "knn", "param_grid": {"n_neighbors": [1]}}]}))
    cfg = load_config(path)
    assert cfg.models[0].param_grid == {"n_neighbors": [1]}


def test_load_config_bad_json(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError, match="not valid JSON"):
        load_config(path)


@pytest.mark.parametrize("data", [
    {"colour": "blue"},
    {"split": {"test_size": 0.2, "shuffle": True}},
    {"models": [{"family": "knn", "grid": {}}]},
    {"features": ["min_count"]},
])
def test_unknown_keys_rejected(data):
    with pytest.raises(ConfigError):
        PipelineConfig.from_dict(data)


@pytest.mark.parametrize("factory", [
    lambda: SplitConfig(test_size=0),
    lambda: SplitConfig(test_size=1.0),
    lambda: FeatureConfig(min_count=0),
    lambda: FeatureConfig(min_doc_fraction=1.0),
    lambda: FeatureConfig(weighting="bm25"),
    lambda: FeatureConfig(keywords={"bad": "(unclosed"}),
    lambda: CVConfig(n_splits=1),
    lambda: CVConfig(n_repeats=0),
    lambda: CVConfig(scoring="f1"),
    lambda: NormalizerConfig(min_token_len=0),
    lambda: ModelConfig("random_forest"),
    lambda: ModelConfig("knn", param_grid={"k": [1]}),
    lambda: ModelConfig("xgboost", param_grid={}),
    lambda: ModelConfig("knn", balance="tomek"),
    lambda: PipelineConfig(models=(), one_vs_all=()),
    lambda: PipelineConfig(one_vs_all=("naive_bayes",)),
])
def test_invalid_configuration_is_fatal_at_setup(factory):
    with pytest.raises(ConfigError):
        factory()


def test_config_error_is_a_value_error():
    assert issubclass(ConfigError, ValueError)


def test_wordnet_off_by_default():
    assert NormalizerConfig().use_wordnet is False
