"""Tests for request contracts and settings."""

import json

import pytest
from pydantic import ValidationError

from swap_engine.config.limits import DEFAULT_LIMITS, RiskLimits
from swap_engine.config.settings import SOL_MINT, BotSettings, load_pairs_file
from swap_engine.config.trade_contract import (
    AddTradingPairRequest,
    CascadeExecutionRequest,
    RiskLimitsConfig,
    TradeDirection,
    TradeExecutionRequest,
)


def test_trade_request_parsing():
    request = TradeExecutionRequest(direction="SOL_TO_TOKEN", amount_sol=0.5)
    assert request.direction == TradeDirection.SOL_TO_TOKEN

    with pytest.raises(ValidationError):
        TradeExecutionRequest(direction="SIDEWAYS", amount_sol=0.5)


def test_add_pair_request_defaults_to_global_limits():
    request = AddTradingPairRequest(id="SOL-XYZ", input_asset=SOL_MINT, output_asset="XYZ")

    assert request.validation_errors() == []
    pair = request.to_pair()
    assert pair.limits == DEFAULT_LIMITS
    assert pair.enabled is True


def test_add_pair_request_with_limits():
    request = AddTradingPairRequest(
        id="SOL-XYZ",
        input_asset=SOL_MINT,
        output_asset="XYZ",
        rank=2,
        output_decimals=6,
        risk_limits=RiskLimitsConfig(
            max_trade_notional=1.0, max_daily_notional=5.0, max_slippage_bps=50
        ),
    )

    pair = request.to_pair()
    assert pair.rank == 2
    assert pair.output_decimals == 6
    assert pair.limits.max_trade_notional == 1.0
    assert pair.limits.max_slippage_bps == 50


def test_add_pair_request_business_validation():
    request = AddTradingPairRequest(
        id=" ",
        input_asset="XYZ",
        output_asset="XYZ",
        risk_limits=RiskLimitsConfig(
            max_trade_notional=10.0, max_daily_notional=5.0, max_slippage_bps=50
        ),
    )

    errors = request.validation_errors()
    assert len(errors) == 3


def test_risk_limits_config_bounds():
    with pytest.raises(ValidationError):
        RiskLimitsConfig(max_trade_notional=0, max_daily_notional=5.0, max_slippage_bps=50)
    with pytest.raises(ValidationError):
        RiskLimitsConfig(max_trade_notional=1.0, max_daily_notional=5.0, max_slippage_bps=20_000)


def test_cascade_request_to_plan():
    plan = CascadeExecutionRequest(initial_amount_sol=0.2, pair_ids=["a", "b"]).to_plan()

    assert plan.initial_amount == 0.2
    assert plan.pair_ids == ["a", "b"]
    assert plan.max_depth == 3
    assert plan.stop_on_failure is True


def test_risk_limits_dict_round_trip():
    limits = RiskLimits.from_dict({"max_trade_notional": 2.0, "max_daily_notional": 4.0})

    assert limits.max_trade_notional == 2.0
    assert limits.to_dict()["max_daily_notional"] == 4.0


def test_settings_from_env(monkeypatch, tmp_path):
    pairs_file = tmp_path / "pairs.json"
    pairs_file.write_text(json.dumps([{"id": "a", "input_asset": SOL_MINT, "output_asset": "X"}]))

    monkeypatch.setenv("TRADEBOT_ENABLED", "true")
    monkeypatch.setenv("TRADEBOT_MODE", "LIVE")
    monkeypatch.setenv("TRADEBOT_TOKEN_MINT", "X")
    monkeypatch.setenv("TRADEBOT_MAX_TRADE_NOTIONAL", "2.5")
    monkeypatch.setenv("TRADEBOT_PAIRS_FILE", str(pairs_file))

    settings = BotSettings.from_env()

    assert settings.enabled is True
    assert settings.mode == "live"
    assert settings.token_mint == "X"
    assert settings.default_limits.max_trade_notional == 2.5
    assert settings.default_limits.max_daily_notional == DEFAULT_LIMITS.max_daily_notional
    assert settings.pairs[0]["id"] == "a"
    assert "wallet_private_key" not in repr(settings)


def test_pairs_file_must_be_a_list(tmp_path):
    pairs_file = tmp_path / "pairs.json"
    pairs_file.write_text(json.dumps({"id": "a"}))

    with pytest.raises(ValueError):
        load_pairs_file(str(pairs_file))
