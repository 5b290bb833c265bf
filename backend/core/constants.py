"""
Core constants — **Single Source of Truth** for project-wide magic numbers.

Any formula or business rule that references a numeric constant should
import it from here (or read the matching Django setting, which defaults
to the value below) instead of hardcoding.  This avoids drift between
apps that use the same value.
"""

# ── Wallet / deposit ────────────────────────────────────────────────
# Amount held from the reporter's wallet when a rescue is submitted and
# refunded when the rescue completes.
RESCUE_DEPOSIT_AMOUNT: int = 20

# Smallest accepted wallet top-up.
MIN_TOP_UP_AMOUNT: int = 10

# Number of ledger entries returned with the wallet view.
WALLET_HISTORY_LIMIT: int = 50

# ── Rescue submission ───────────────────────────────────────────────
MAX_RESCUE_IMAGES: int = 5
MAX_DESCRIPTION_LENGTH: int = 1000

# ── Escalation ──────────────────────────────────────────────────────
# A reported rescue nobody accepted within this window is escalated to
# facilities by the scheduler.
ESCALATION_DEADLINE_SECONDS: int = 5 * 60

# How often the scheduler tick runs.
ESCALATION_INTERVAL_SECONDS: int = 60

# ── Visibility ──────────────────────────────────────────────────────
ORG_VISIBILITY_RADIUS_KM: float = 50.0
FACILITY_VISIBILITY_RADIUS_KM: float = 10.0

# Mean Earth radius used by the haversine formula.
EARTH_RADIUS_KM: float = 6371.0

# ── Carrier history ─────────────────────────────────────────────────
CARRIER_HISTORY_LIMIT: int = 50
