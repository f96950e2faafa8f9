"""System account identifiers."""

# Holds every staked unit until it is paid out or withdrawn as fees.
ENGINE_CUSTODY_ID = "ENGINE_CUSTODY"

SYSTEM_ACCOUNT_IDS = frozenset({ENGINE_CUSTODY_ID})
