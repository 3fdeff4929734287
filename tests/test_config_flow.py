from unittest.mock import patch

import pytest
from homeassistant import config_entries
from homeassistant.data_entry_flow import FlowResultType

from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.plantcare.const import (
    CONF_BASE_URL,
    CONF_REQUEST_TIMEOUT,
    CONF_UPDATE_INTERVAL,
    DEFAULT_BASE_URL,
    DOMAIN,
)

pytestmark = pytest.mark.usefixtures("enable_custom_integrations")

USER_INPUT = {
    CONF_BASE_URL: "http://192.168.1.20:5000/api/",
    CONF_REQUEST_TIMEOUT: 5,
    CONF_UPDATE_INTERVAL: 15,
}


@pytest.mark.asyncio
async def test_user_flow_creates_entry(hass):
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})
    assert result["type"] == FlowResultType.FORM
    assert result["step_id"] == "user"

    with patch("custom_components.plantcare.async_setup_entry", return_value=True):
        result = await hass.config_entries.flow.async_configure(result["flow_id"], USER_INPUT)
        await hass.async_block_till_done()

    assert result["type"] == FlowResultType.CREATE_ENTRY
    assert result["title"] == "PlantCare"
    assert result["data"] == {
        CONF_BASE_URL: "http://192.168.1.20:5000/api",
        CONF_REQUEST_TIMEOUT: 5,
        CONF_UPDATE_INTERVAL: 15,
    }


@pytest.mark.asyncio
async def test_user_flow_rejects_invalid_url(hass):
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})

    result = await hass.config_entries.flow.async_configure(
        result["flow_id"], {**USER_INPUT, CONF_BASE_URL: "not a url"}
    )

    assert result["type"] == FlowResultType.FORM
    assert result["errors"] == {CONF_BASE_URL: "invalid_url"}


@pytest.mark.asyncio
async def test_single_instance(hass):
    MockConfigEntry(domain=DOMAIN, data={CONF_BASE_URL: DEFAULT_BASE_URL}).add_to_hass(hass)

    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})

    assert result["type"] == FlowResultType.ABORT
    assert result["reason"] == "single_instance_allowed"


@pytest.mark.asyncio
async def test_options_flow_updates_settings(hass):
    entry = MockConfigEntry(
        domain=DOMAIN,
        data={CONF_BASE_URL: DEFAULT_BASE_URL, CONF_REQUEST_TIMEOUT: 10, CONF_UPDATE_INTERVAL: 30},
    )
    entry.add_to_hass(hass)

    result = await hass.config_entries.options.async_init(entry.entry_id)
    assert result["type"] == FlowResultType.FORM
    assert result["step_id"] == "init"

    result = await hass.config_entries.options.async_configure(
        result["flow_id"],
        {CONF_BASE_URL: "https://plants.example.org/api/", CONF_REQUEST_TIMEOUT: 0, CONF_UPDATE_INTERVAL: 60},
    )

    assert result["type"] == FlowResultType.CREATE_ENTRY
    assert entry.options == {
        CONF_BASE_URL: "https://plants.example.org/api",
        CONF_REQUEST_TIMEOUT: 0,
        CONF_UPDATE_INTERVAL: 60,
    }
