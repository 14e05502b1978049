"""
Feature flags.

Controls visibility of features beyond the official HP Homestay Rules
2025 scope. The code paths stay in place; the flags keep them hidden for
policy compliance.
"""

from typing import Dict

FEATURE_FLAGS: Dict[str, bool] = {
    # Tourism discovery: amenities (AC, WiFi, TV, ...) for filtering
    "SHOW_AMENITIES_SELECTION": False,
    # Nearby attractions checklist
    "SHOW_NEARBY_ATTRACTIONS": False,
    # Promotional location highlights
    "SHOW_KEY_LOCATION_HIGHLIGHTS": False,
    # Post-approval tourism marketing module
    "SHOW_TOURISM_MARKETING_MODULE": False,
    # Beds-per-room configuration
    "SHOW_ADVANCED_ROOM_CONFIG": False,
}


def is_feature_enabled(flag: str) -> bool:
    """Unknown flags are treated as disabled."""
    return FEATURE_FLAGS.get(flag) is True
