"""
Pipeline configuration from MENUSCAN_* variables.

Covers:
  - defaults
  - int/float/str coercion from an explicit env mapping
  - blank values keep the default
  - bad numbers raise ValueError naming the variable
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from menuscan.config import PipelineConfig


class TestPipelineConfig:

    def test_defaults(self):
        cfg = PipelineConfig()
        assert cfg.min_dishes == 3
        assert cfg.min_confidence == 0.5
        assert cfg.association_window == 2
        assert cfg.price_ceiling == 1000.0
        assert cfg.default_currency == "baht"

    def test_from_env_mapping(self):
        cfg = PipelineConfig.from_env({
            "MENUSCAN_MIN_DISHES": "8",
            "MENUSCAN_SIMILARITY_THRESHOLD": "0.9",
            "MENUSCAN_DEFAULT_CURRENCY": "USD",
            "UNRELATED": "1",
        })
        assert cfg.min_dishes == 8
        assert cfg.similarity_threshold == 0.9
        assert cfg.default_currency == "usd"
        assert cfg.max_dishes == 20

    def test_blank_values_ignored(self):
        cfg = PipelineConfig.from_env({"MENUSCAN_MIN_DISHES": "  "})
        assert cfg.min_dishes == 3

    def test_bad_int(self):
        with pytest.raises(ValueError, match="MENUSCAN_MIN_DISHES"):
            PipelineConfig.from_env({"MENUSCAN_MIN_DISHES": "many"})

    def test_process_environment(self, monkeypatch):
        monkeypatch.setenv("MENUSCAN_STAGE_TIMEOUT_S", "2.5")
        cfg = PipelineConfig.from_env(dotenv=False)
        assert cfg.stage_timeout_s == 2.5

    def test_frozen(self):
        cfg = PipelineConfig()
        with pytest.raises(Exception):
            cfg.min_dishes = 1
