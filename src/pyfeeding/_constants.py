"""Internal constants shared across the library."""

USER_AGENT = "pyfeeding"

#: Local hour at which a previous day's state is archived and blanked.
DEFAULT_RESET_HOUR = 7

#: Number of history records kept (newest first).
HISTORY_LIMIT = 50

STATE_TABLE = "feeding_states"
HISTORY_TABLE = "feeding_history"

STATE_FILE_NAME = "feeding-state.json"
HISTORY_FILE_NAME = "feeding-history.json"

DEFAULT_MQTT_TOPIC_PREFIX = "feeding"

# Household roster offered by the caretaker picker.
# Any non-empty name is accepted; this is only a suggestion list.
CARETAKER_NAMES: tuple[str, ...] = (
    "Africa",
    "Dani",
    "Garnet",
    "Leonyx",
    "Salem",
    "Siahh",
    "Tats",
    "Yose",
)
