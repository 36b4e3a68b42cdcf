import importlib.util
import pathlib
import sys

import pandas as pd

EXPORT_MODULE_PATH = pathlib.Path(__file__).resolve().parents[2] / "scripts" / "export_venue_pairs.py"
export_spec = importlib.util.spec_from_file_location("chainspread_export_venue_pairs", EXPORT_MODULE_PATH)
export_module = importlib.util.module_from_spec(export_spec)
sys.modules[export_spec.name] = export_module
assert export_spec.loader is not None
export_spec.loader.exec_module(export_module)

MARKETS = {
    "CAKE/USDT": {"base": "CAKE", "quote": "USDT", "active": True, "spot": True},
    "SFUND/USDT": {"base": "sfund", "quote": "usdt"},
    "CAKE/BTC": {"base": "CAKE", "quote": "BTC"},
    "OLD/USDT": {"base": "OLD", "quote": "USDT", "active": False},
    "CAKE/USDT:USDT": {"base": "CAKE", "quote": "USDT", "spot": False},
}


class _FakeExchange:
    def load_markets(self):
        return MARKETS


def test_quoted_base_tokens_filters_by_quote():
    assert export_module.quoted_base_tokens(MARKETS, "usdt") == ["CAKE", "SFUND"]
    assert export_module.quoted_base_tokens(MARKETS, "BTC") == ["CAKE"]


def test_export_pairs_writes_csv(tmp_path):
    output = tmp_path / "pairs.csv"

    frame = export_module.export_pairs(_FakeExchange(), "USDT", str(output))

    assert list(frame["tokenName"]) == ["CAKE", "SFUND"]
    assert list(pd.read_csv(output)["tokenName"]) == ["CAKE", "SFUND"]
