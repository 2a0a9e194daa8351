from datetime import timedelta

# --- Pickup priorities ---
PRIORITY_LOW = 'LOW'
PRIORITY_MEDIUM = 'MEDIUM'
PRIORITY_HIGH = 'HIGH'
PRIORITY_URGENT = 'URGENT'

DEFAULT_PICKUP_PRIORITY = PRIORITY_MEDIUM

# Ranking used when ordering pickups by urgency
PRIORITY_RANK = {
    PRIORITY_LOW: 1,
    PRIORITY_MEDIUM: 2,
    PRIORITY_HIGH: 3,
    PRIORITY_URGENT: 4,
}

# How far ahead a pickup is scheduled when no time is given
SCHEDULE_OFFSETS = {
    PRIORITY_URGENT: timedelta(minutes=30),
    PRIORITY_HIGH: timedelta(hours=2),
    PRIORITY_MEDIUM: timedelta(hours=4),
    PRIORITY_LOW: timedelta(hours=24),
}

# --- Fill-level thresholds (percent) ---
AUTO_ASSIGN_LEVEL = 80       # Bins at or above this level get a driver automatically
HIGH_PRIORITY_LEVEL = 85
URGENT_PRIORITY_LEVEL = 95
AUTO_PICKUP_LEVEL = 80       # Scheduler creates pickups at or above this level

# Priority the scheduler requests before level-based escalation
AUTO_PICKUP_REQUESTED_PRIORITY = PRIORITY_HIGH

# --- Scheduler windows ---
REMINDER_WINDOW = timedelta(minutes=15)
OVERDUE_THRESHOLD = timedelta(minutes=30)
