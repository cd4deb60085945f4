"""Tests for the global trading switch."""

import pytest

from swap_engine.api.trading_switch import TradingSwitch


@pytest.mark.asyncio
async def test_trading_switch_toggle():
    """Test enabling and disabling trading."""
    switch = TradingSwitch()

    # Disabled until configured otherwise
    assert await switch.is_enabled() is False

    await switch.enable("Test activation")
    assert await switch.is_enabled() is True

    await switch.disable("Test deactivation")
    assert await switch.is_enabled() is False


@pytest.mark.asyncio
async def test_trading_switch_status():
    """Test switch status retrieval."""
    switch = TradingSwitch(enabled=True)

    status = await switch.get_status()
    assert status["enabled"] is True
    assert status["changed_at"] == "N/A"

    await switch.disable("Maintenance")
    status = await switch.get_status()
    assert status["enabled"] is False
    assert status["reason"] == "Maintenance"
    assert status["changed_at"] != "N/A"
