"""설정 로드/검증."""

import json

import pytest

from trading_desk.utils.config import ConfigError, DeskConfig, InstrumentConfig


def test_defaults_track_six_instruments():
    config = DeskConfig()

    symbols = [i.symbol for i in config.instruments]
    assert symbols == ["BTC", "ETH", "NATGAS", "SOL", "LINK", "ADA"]
    assert config.instruments[2].asset_class == "commodity"
    assert config.trading.confidence_threshold == 0.82
    assert config.trading.profit_target == 250.0
    assert config.simulation.max_history == 50


def test_from_yaml(tmp_path):
    path = tmp_path / "desk.yaml"
    path.write_text(
        """
instruments:
  - {symbol: BTC, name: Bitcoin, volatility: 0.04, initial_price: 65420}
  - {symbol: NATGAS, volatility: 0.035, initial_price: 2.15, asset_class: commodity}
simulation:
  tick_interval: 1
  seed: 7
  unknown_knob: true
trading:
  initial_cash: 5000
provider:
  name: ma_cross
  timeout: 2
  short_period: 5
log_dir: null
""",
        encoding="utf-8",
    )

    config = DeskConfig.from_yaml(path)

    assert [i.symbol for i in config.instruments] == ["BTC", "NATGAS"]
    assert config.simulation.tick_interval == 1
    assert config.simulation.seed == 7
    assert config.trading.initial_cash == 5000
    assert config.provider.name == "ma_cross"
    assert config.provider.timeout == 2.0
    assert config.provider.params == {"short_period": 5}
    assert config.log_dir is None


def test_empty_yaml_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    config = DeskConfig.from_yaml(path)

    assert len(config.instruments) == 6
    assert config.provider.name == "technical"


def test_from_json(tmp_path):
    path = tmp_path / "desk.json"
    path.write_text(json.dumps({"trading": {"profit_target": 100}}), encoding="utf-8")

    assert DeskConfig.from_json(path).trading.profit_target == 100


def test_duplicate_symbols_rejected():
    with pytest.raises(ConfigError, match="중복"):
        DeskConfig(instruments=[InstrumentConfig("BTC"), InstrumentConfig("BTC")])


def test_unknown_asset_class_rejected():
    with pytest.raises(ConfigError):
        DeskConfig(instruments=[InstrumentConfig("GOLD", asset_class="metal")])


def test_empty_instruments_rejected():
    with pytest.raises(ConfigError):
        DeskConfig._from_dict({"instruments": []})


def test_bad_threshold_rejected():
    with pytest.raises(ConfigError):
        DeskConfig._from_dict({"trading": {"confidence_threshold": 1.5}})


def test_malformed_instrument_rejected():
    with pytest.raises(ConfigError):
        DeskConfig._from_dict({"instruments": [{"name": "no symbol"}]})


def test_section_must_be_mapping():
    with pytest.raises(ConfigError):
        DeskConfig._from_dict({"simulation": [1, 2, 3]})


def test_non_numeric_value_raises_config_error(tmp_path):
    path = tmp_path / "typo.yaml"
    path.write_text("instruments:\n  - {symbol: BTC, initial_price: abc}\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="타입"):
        DeskConfig.from_yaml(path)


def test_non_numeric_provider_timeout_raises_config_error():
    with pytest.raises(ConfigError):
        DeskConfig._from_dict({"provider": {"name": "technical", "timeout": "soon"}})


def test_lookback_longer_than_history_rejected():
    with pytest.raises(ConfigError, match="min_lookback"):
        DeskConfig._from_dict({
            "simulation": {"max_history": 10},
            "trading": {"min_lookback": 20},
        })


def test_save_yaml_writes_file(tmp_path):
    path = tmp_path / "out" / "desk.yaml"
    DeskConfig().save_yaml(path)

    reloaded = DeskConfig.from_yaml(path)
    assert [i.symbol for i in reloaded.instruments] == [i.symbol for i in DeskConfig().instruments]
