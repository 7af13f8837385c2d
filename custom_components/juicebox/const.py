from __future__ import annotations

from datetime import timedelta

DOMAIN = "juicebox"
MANUFACTURER = "Enel X"
MODEL = "JuiceBox"

PLATFORMS = ["switch", "sensor", "binary_sensor"]

# JuiceNet cloud endpoints
BASE_URL = "https://jbv1-api.emotorwerks.com"
ACCOUNT_PATH = "/box_pin"
SECURE_PATH = "/box_api_secure"

CMD_GET_ACCOUNT_UNITS = "get_account_units"
CMD_GET_STATE = "get_state"
CMD_SET_OVERRIDE = "set_override"

CONF_API_TOKEN = "api_token"

OPT_SCAN_INTERVAL = "scan_interval"
OPT_SETTLE_INTERVAL = "settle_interval"
OPT_API_TIMEOUT = "api_timeout"
OPT_IGNORED_IDS = "ignored_ids"

DEFAULT_SCAN_INTERVAL = 10
# Commands take ~30s to show up in get_state
DEFAULT_SETTLE_INTERVAL = 30
DEFAULT_API_TIMEOUT = 15
DEFAULT_DISCOVERY_INTERVAL = timedelta(hours=1)

# Stopping is a resume time pushed far enough out to never arrive
STOP_OVERRIDE_DELAY_S = 366 * 24 * 60 * 60
